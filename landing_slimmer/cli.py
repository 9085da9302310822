#!/usr/bin/env python3
"""
Landing Slimmer command line
----------------------------
Usage examples:
    landing-slimmer --in ./index.html --base https://example.com --out slim.html
    landing-slimmer --url https://example.com/landing --out slim.html
    landing-slimmer --in ./index.html --no-visual --safelist "hero-,keep-me"
"""

import argparse
import sys

from landing_slimmer.config import (
    DEFAULT_DIFF_THRESHOLD,
    DEFAULT_MAX_DIFF_PIXELS,
    DEFAULT_OUTPUT,
    DEFAULT_TIMEOUT,
    DEFAULT_VIEWPORTS,
    SlimConfig,
)
from landing_slimmer.errors import EXIT_FAILURE
from landing_slimmer.log import setup_logger
from landing_slimmer.pipeline import run


class SlimmerArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with the generic failure code; 2 means a failed visual check."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAILURE, f"{self.prog}: error: {message}\n")


def build_parser():
    parser = SlimmerArgumentParser(
        prog='landing-slimmer',
        description='Reduce a landing page and its CSS to one self-contained, minified HTML file',
    )
    parser.add_argument('--in', dest='input_path', help='Local HTML file (View Source)')
    parser.add_argument('--url', help='Live URL (will fetch HTML + linked CSS)')
    parser.add_argument('--base', help='Base origin to resolve relative URLs (defaults to URL origin)')
    parser.add_argument('--out', default=DEFAULT_OUTPUT, help=f'Output HTML (default: {DEFAULT_OUTPUT})')
    parser.add_argument('--no-visual', action='store_true', help='Skip visual regression (faster, no browser)')
    parser.add_argument('--viewports', default=DEFAULT_VIEWPORTS,
                        help=f'Comma-separated WIDTHxHEIGHT list (default: "{DEFAULT_VIEWPORTS}")')
    parser.add_argument('--keep-font-links', action='store_true',
                        help='Always keep <link href=fonts.googleapis.com> stylesheets')
    parser.add_argument('--drop-font-links', action='store_true',
                        help='Always remove web-font stylesheet links')
    parser.add_argument('--font-css', help='Local @font-face CSS to inline instead of web-font links')
    parser.add_argument('--safelist', default='',
                        help='Extra classes/prefixes to keep, e.g. "cls1,cls2,prefix-"')
    parser.add_argument('--max-diff-pixels', type=int, default=DEFAULT_MAX_DIFF_PIXELS,
                        help=f'Differing pixels tolerated per viewport (default: {DEFAULT_MAX_DIFF_PIXELS})')
    parser.add_argument('--diff-threshold', type=float, default=DEFAULT_DIFF_THRESHOLD,
                        help=f'Per-pixel colour difference threshold, 0-1 (default: {DEFAULT_DIFF_THRESHOLD})')
    parser.add_argument('--timeout', type=float, default=DEFAULT_TIMEOUT, help='Network timeout in seconds')
    parser.add_argument('--verbose', action='store_true', help='Log every fetch and stage')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logger(args.verbose)
    return run(SlimConfig.from_args(args))


if __name__ == "__main__":
    raise SystemExit(main())
