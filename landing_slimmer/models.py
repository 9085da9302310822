"""
Data model shared by the pipeline stages.
"""

import enum
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Tuple


class Outcome(enum.Enum):
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StyleSource:
    """One contributing CSS origin: a linked stylesheet or an inline block."""
    css: str
    url: Optional[str] = None
    media: Optional[str] = None

    @property
    def is_inline(self) -> bool:
        return self.url is None

    def wrapped(self) -> str:
        """CSS text, wrapped in an @media block unless media is empty or 'all'"""
        media = (self.media or "").strip()
        if media and media.lower() != "all":
            return f"@media {media}{{\n{self.css}\n}}"
        return self.css


@dataclass(frozen=True)
class LoadResult:
    outcome: Outcome
    source: Optional[StyleSource] = None
    message: str = ""


@dataclass(frozen=True)
class Safelist:
    """Exact token names and prefixes that are never pruned."""
    standard: FrozenSet[str] = frozenset()
    prefixes: Tuple[str, ...] = ()

    def protects(self, token: str) -> bool:
        if token in self.standard:
            return True
        return any(token.startswith(prefix) for prefix in self.prefixes)


@dataclass(frozen=True)
class DiffResult:
    viewport: Tuple[int, int]
    diff_pixels: int
    diff_path: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.viewport[0]}x{self.viewport[1]}"


@dataclass
class GuardReport:
    outcome: Outcome
    budget: int = 0
    results: List[DiffResult] = field(default_factory=list)
    message: str = ""

    @property
    def worst(self) -> int:
        return max((r.diff_pixels for r in self.results), default=0)

    @property
    def accepted(self) -> bool:
        return self.outcome is not Outcome.FAILED


@dataclass
class SlimResult:
    """Output of the deterministic part of the pipeline."""
    original_html: str
    html: str
    aggregated_css: str
    pruned_css: str
    minified_css: str
    sources: List[StyleSource] = field(default_factory=list)
    skipped: List[LoadResult] = field(default_factory=list)
