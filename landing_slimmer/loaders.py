"""
Document and stylesheet loading
-------------------------------
Fetch over HTTP with requests or read from the local filesystem.
"""

import os
import re
from urllib.parse import unquote, urljoin, urlparse

import requests

from landing_slimmer.config import DEFAULT_TIMEOUT
from landing_slimmer.errors import DocumentLoadError, LoadError
from landing_slimmer.log import get_logger

log = get_logger("loaders")

HEADERS = {"user-agent": "Mozilla/5.0"}

ABSOLUTE_HTTP = re.compile(r'^https?://', re.IGNORECASE)


def is_network_url(href):
    """True for absolute http(s) and protocol-relative references"""
    return bool(ABSOLUTE_HTTP.match(href)) or href.startswith("//")


def resolve_url(href, base):
    """Resolve a stylesheet href against the base origin.

    Returns None for empty and data: references.
    """
    href = (href or "").strip()
    if not href or href.lower().startswith("data:"):
        return None
    if ABSOLUTE_HTTP.match(href):
        return href
    if href.startswith("//"):
        return f"{urlparse(base).scheme}:{href}"
    return urljoin(base, href)


def local_css_path(href, document_path):
    """Filesystem path of a relative href, taken from the input document's directory."""
    path = unquote(re.split(r'[?#]', href, maxsplit=1)[0])
    # Root-relative references treat the document's directory as the site root
    path = path.lstrip("/")
    return os.path.normpath(os.path.join(os.path.dirname(os.path.abspath(document_path)), path))


class SourceLoader:
    """Loads raw HTML and CSS text; one instance per run."""

    def __init__(self, session=None, timeout=DEFAULT_TIMEOUT):
        self.session = session or requests.Session()
        self.session.headers.update(HEADERS)
        self.timeout = timeout

    def fetch(self, url):
        log.info("Fetching: %s", url)
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise LoadError(f"Could not fetch {url}: {e}") from e
        return resp.text

    def read(self, path):
        log.info("Reading: %s", path)
        try:
            with open(path, 'r', encoding='utf-8', errors='replace') as f:
                return f.read()
        except OSError as e:
            raise LoadError(f"Could not read {path}: {e}") from e

    def load_document(self, input_path=None, page_url=None):
        """Raw HTML from a local file or a live page; failures are fatal."""
        try:
            if page_url:
                return self.fetch(page_url)
            return self.read(input_path)
        except LoadError as e:
            raise DocumentLoadError(str(e)) from e
