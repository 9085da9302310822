"""
Stylesheet Aggregator
---------------------
Collect every stylesheet contributing to a document, in cascade order:
linked stylesheets in document order (wrapped in @media when their media
is not 'all'), followed by inline <style> blocks in document order.
"""

from bs4 import BeautifulSoup

from landing_slimmer.errors import LoadError
from landing_slimmer.loaders import is_network_url, local_css_path, resolve_url
from landing_slimmer.log import get_logger
from landing_slimmer.models import LoadResult, Outcome, StyleSource

log = get_logger("aggregate")


def is_stylesheet_link(tag):
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return "stylesheet" in (r.lower() for r in rel)


def load_linked_source(link, base_url, loader, document_path=None):
    """Load one <link rel=stylesheet>; unreachable sources come back SKIPPED."""
    href = (link.get("href") or "").strip()
    media = (link.get("media") or "").strip() or None
    url = resolve_url(href, base_url)
    if not url:
        return LoadResult(Outcome.SKIPPED, message=f"Ignoring stylesheet reference '{href[:40]}'")

    try:
        if document_path and not is_network_url(href):
            css = loader.read(local_css_path(href, document_path))
        else:
            css = loader.fetch(url)
    except LoadError as e:
        return LoadResult(Outcome.SKIPPED, message=str(e))

    if not css.strip():
        return LoadResult(Outcome.SKIPPED, message=f"Empty stylesheet: {url}")
    return LoadResult(Outcome.OK, StyleSource(css=css, url=url, media=media))


def collect_style_sources(html, base_url, loader, document_path=None):
    """Return (sources, skipped) for a document, sources in cascade order"""
    soup = BeautifulSoup(html, 'html.parser')
    sources = []
    skipped = []

    for link in soup.find_all("link"):
        if not is_stylesheet_link(link):
            continue
        result = load_linked_source(link, base_url, loader, document_path)
        if result.outcome is Outcome.OK:
            sources.append(result.source)
        else:
            log.info("Skipping stylesheet: %s", result.message)
            skipped.append(result)

    # Inline styles after linked CSS
    for style in soup.find_all("style"):
        sources.append(StyleSource(css=style.get_text()))

    log.info("Collected %d stylesheet sources (%d skipped)", len(sources), len(skipped))
    return sources, skipped


def aggregate_css(sources):
    """Concatenate sources in order into one stylesheet"""
    return "\n\n".join(source.wrapped() for source in sources)
