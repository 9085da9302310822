"""
Slimming pipeline
-----------------
Aggregator -> Pruner -> Minifier -> Assembler, then the optional Visual Guard
as a final accept/reject gate. Only an accepted result is written to disk.
"""

import asyncio
import sys
from pathlib import Path

from landing_slimmer.aggregate import aggregate_css, collect_style_sources
from landing_slimmer.assemble import assemble_document
from landing_slimmer.errors import (
    EXIT_FAILURE,
    EXIT_OK,
    EXIT_VISUAL_FAILED,
    ConfigError,
    LoadError,
)
from landing_slimmer.loaders import SourceLoader
from landing_slimmer.log import get_logger
from landing_slimmer.minify import minify_css
from landing_slimmer.models import Outcome, SlimResult, StyleSource
from landing_slimmer.prune import build_safelist, parse_safelist, prune_css
from landing_slimmer.visual_guard import run_visual_guard

log = get_logger("pipeline")


def slim_page(config, loader=None):
    """Run the deterministic stages and return the slim document"""
    loader = loader or SourceLoader(timeout=config.timeout)

    # 1) Load page HTML + aggregate CSS (linked order + inline)
    html = loader.load_document(config.input_path, config.page_url)
    sources, skipped = collect_style_sources(
        html, config.resolved_base_url, loader, document_path=config.input_path
    )
    if config.font_css_path:
        try:
            font_css = loader.read(config.font_css_path)
        except LoadError as e:
            raise ConfigError(f"{e} (check --font-css)") from e
        sources.insert(0, StyleSource(css=font_css, url=Path(config.font_css_path).resolve().as_uri()))
    aggregated = aggregate_css(sources)

    # 2) Purge & minify
    safelist = build_safelist(parse_safelist(config.safelist))
    pruned = prune_css(html, aggregated, safelist)
    minified = minify_css(pruned)

    # 3) Build slim HTML
    slim_html = assemble_document(html, minified, keep_font_links=config.keeps_font_links)

    log.info(
        "Sizes: html %d, aggregated css %d, pruned css %d, minified css %d, output %d",
        len(html), len(aggregated), len(pruned), len(minified), len(slim_html),
    )
    return SlimResult(
        original_html=html,
        html=slim_html,
        aggregated_css=aggregated,
        pruned_css=pruned,
        minified_css=minified,
        sources=sources,
        skipped=skipped,
    )


def check_visual(config, result, renderer=None):
    return asyncio.run(run_visual_guard(
        result.original_html,
        result.html,
        config.viewport_list,
        budget=config.max_diff_pixels,
        threshold=config.diff_threshold,
        workdir=config.workdir,
        renderer=renderer,
    ))


def run(config, loader=None, renderer=None):
    """Run one slimming job and return the process exit code"""
    try:
        config.validate()
    except ConfigError as e:
        print(e, file=sys.stderr)
        return EXIT_FAILURE

    try:
        result = slim_page(config, loader)

        # 4) Optional visual guard
        if config.visual:
            report = check_visual(config, result, renderer)
            if report.outcome is Outcome.FAILED:
                print(f"❌ Visual diff too large: {report.message}. Re-run with --safelist to keep more "
                      "selectors, or use --no-visual if you accept diffs.", file=sys.stderr)
                return EXIT_VISUAL_FAILED

        # 5) Write final output
        with open(config.output_path, 'w', encoding='utf-8') as f:
            f.write(result.html)
    except Exception as e:
        print(f"Failed: {e}", file=sys.stderr)
        if config.verbose:
            log.exception("Run failed")
        return EXIT_FAILURE

    print(f"✔ Wrote {config.output_path}")
    return EXIT_OK
