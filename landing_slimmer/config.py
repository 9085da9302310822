"""
Run configuration
-----------------
SlimConfig holds everything a single run needs. It is built from the parsed
command line and validated before any stage runs.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from landing_slimmer.errors import ConfigError

DEFAULT_OUTPUT = "slim.html"
DEFAULT_BASE_URL = "https://example.com"
DEFAULT_VIEWPORTS = "1440x900,1024x768,768x1024,390x844"
# <= 500 changed pixels across the full page per viewport is "close enough"
DEFAULT_MAX_DIFF_PIXELS = 500
DEFAULT_DIFF_THRESHOLD = 0.1
DEFAULT_TIMEOUT = 30


def parse_viewports(value: str) -> List[Tuple[int, int]]:
    """Parse "1440x900,390x844" into [(1440, 900), (390, 844)]"""
    viewports = []
    for item in (value or "").split(","):
        item = item.strip().lower()
        if not item:
            continue
        try:
            width, height = (int(part) for part in item.split("x"))
        except ValueError:
            raise ConfigError(f"Invalid viewport '{item}' (use WIDTHxHEIGHT, e.g. --viewports 1440x900,390x844)")
        if width <= 0 or height <= 0:
            raise ConfigError(f"Invalid viewport '{item}': width and height must be positive")
        viewports.append((width, height))
    if not viewports:
        raise ConfigError("No viewports given; pass --viewports or use --no-visual")
    return viewports


def url_origin(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


@dataclass
class SlimConfig:
    input_path: Optional[str] = None
    page_url: Optional[str] = None
    base_url: Optional[str] = None
    output_path: str = DEFAULT_OUTPUT
    visual: bool = True
    viewports: str = DEFAULT_VIEWPORTS
    keep_font_links: bool = False
    drop_font_links: bool = False
    font_css_path: Optional[str] = None
    safelist: str = ""
    max_diff_pixels: int = DEFAULT_MAX_DIFF_PIXELS
    diff_threshold: float = DEFAULT_DIFF_THRESHOLD
    workdir: str = field(default_factory=os.getcwd)
    timeout: float = DEFAULT_TIMEOUT
    verbose: bool = False

    @classmethod
    def from_args(cls, args):
        return cls(
            input_path=args.input_path,
            page_url=args.url,
            base_url=args.base,
            output_path=args.out,
            visual=not args.no_visual,
            viewports=args.viewports,
            keep_font_links=args.keep_font_links,
            drop_font_links=args.drop_font_links,
            font_css_path=args.font_css,
            safelist=args.safelist,
            max_diff_pixels=args.max_diff_pixels,
            diff_threshold=args.diff_threshold,
            timeout=args.timeout,
            verbose=args.verbose,
        )

    def validate(self):
        if not self.input_path and not self.page_url:
            raise ConfigError("Provide --in <index.html> OR --url <https://...>")
        if self.input_path and self.page_url:
            raise ConfigError("--in and --url are mutually exclusive; pass only one")
        if self.keep_font_links and self.drop_font_links:
            raise ConfigError("--keep-font-links and --drop-font-links cannot be combined")
        if self.max_diff_pixels < 0:
            raise ConfigError("--max-diff-pixels must be zero or positive")
        if not 0 <= self.diff_threshold <= 1:
            raise ConfigError("--diff-threshold must be between 0 and 1")
        if self.visual:
            parse_viewports(self.viewports)
        return self

    @property
    def resolved_base_url(self) -> str:
        if self.base_url:
            return self.base_url
        if self.page_url:
            return url_origin(self.page_url)
        return DEFAULT_BASE_URL

    @property
    def viewport_list(self) -> List[Tuple[int, int]]:
        return parse_viewports(self.viewports)

    @property
    def keeps_font_links(self) -> bool:
        """Web-font links survive unless a local substitution is supplied or removal is forced."""
        if self.drop_font_links:
            return False
        if self.keep_font_links:
            return True
        return not self.font_css_path
