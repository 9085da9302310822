"""
Document Assembler
------------------
Rewrite the original document into a single static file: external
stylesheets, scripts and resource hints go, baseline meta tags are ensured,
and the final CSS is embedded as the only <style> block in <head>.
"""

from bs4 import BeautifulSoup, Doctype
from bs4.element import Stylesheet
from bs4.builder import ParserRejectedMarkup

from landing_slimmer.aggregate import is_stylesheet_link
from landing_slimmer.errors import DocumentParseError
from landing_slimmer.log import get_logger

log = get_logger("assemble")

FONT_LINK_HOST = "fonts.googleapis"
RESOURCE_HINTS = {"preload", "prefetch", "dns-prefetch"}
VIEWPORT_CONTENT = "width=device-width, initial-scale=1"


def _rel_values(tag):
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return {r.lower() for r in rel}


def is_font_link(tag):
    return FONT_LINK_HOST in (tag.get("href") or "")


def _ensure_head(soup):
    if soup.head is not None:
        return soup.head
    head = soup.new_tag("head")
    if soup.html is not None:
        soup.html.insert(0, head)
    else:
        soup.insert(0, head)
    return head


def _has_charset(soup):
    if soup.find("meta", attrs={"charset": True}):
        return True
    for meta in soup.find_all("meta", attrs={"http-equiv": True}):
        if meta["http-equiv"].lower() == "content-type" and "charset" in (meta.get("content") or "").lower():
            return True
    return False


def _has_viewport(soup):
    return any((meta.get("name") or "").lower() == "viewport" for meta in soup.find_all("meta"))


def assemble_document(original_html, final_css, keep_font_links=True):
    """Return the slim single-file document as text"""
    try:
        soup = BeautifulSoup(original_html, 'html.parser')
    except ParserRejectedMarkup as e:
        raise DocumentParseError(f"Could not parse input document: {e}") from e

    removed = 0
    for link in soup.find_all("link"):
        rels = _rel_values(link)
        if is_stylesheet_link(link):
            if keep_font_links and is_font_link(link):
                continue
            link.decompose()
            removed += 1
        elif rels & RESOURCE_HINTS:
            link.decompose()
            removed += 1

    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
        removed += 1

    for item in list(soup.contents):
        if isinstance(item, Doctype):
            item.extract()

    head = _ensure_head(soup)
    if not _has_charset(soup):
        head.insert(0, soup.new_tag("meta", attrs={"charset": "utf-8"}))
    if not _has_viewport(soup):
        head.append(soup.new_tag("meta", attrs={"name": "viewport", "content": VIEWPORT_CONTENT}))

    style = soup.new_tag("style")
    style.append(Stylesheet(final_css))
    head.append(style)

    log.info("Assembled document: removed %d elements, embedded %d bytes of CSS", removed, len(final_css))
    # eventual_encoding=None leaves existing charset declarations as written
    return "<!DOCTYPE html>\n" + soup.decode(eventual_encoding=None)
