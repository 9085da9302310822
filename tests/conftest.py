import os

import pytest

from landing_slimmer.errors import LoadError


class FakeLoader:
    """Serves CSS from dicts keyed by URL or filesystem path."""

    def __init__(self, urls=None, files=None, document=""):
        self.urls = urls or {}
        self.files = files or {}
        self.document = document
        self.requested = []

    def fetch(self, url):
        self.requested.append(url)
        if url not in self.urls:
            raise LoadError(f"Could not fetch {url}: 404")
        return self.urls[url]

    def read(self, path):
        self.requested.append(path)
        if path not in self.files:
            raise LoadError(f"Could not read {path}")
        return self.files[path]

    def load_document(self, input_path=None, page_url=None):
        return self.document


class FakeRenderer:
    """Draws plain white screenshots; the slim render gets `slim_diff` black pixels."""

    def __init__(self, slim_diff=0):
        self.slim_diff = slim_diff
        self.calls = []
        self.entered = False
        self.closed = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True

    async def snapshot(self, html_path, viewport, png_path):
        from PIL import Image

        width, height = viewport
        img = Image.new("RGB", (width, height), "white")
        if os.path.basename(html_path).startswith(".slim__"):
            for n in range(self.slim_diff):
                img.putpixel((n % width, n // width), (0, 0, 0))
        img.save(png_path)
        self.calls.append((os.path.basename(html_path), viewport))
        return png_path


@pytest.fixture
def fake_loader():
    return FakeLoader


@pytest.fixture
def fake_renderer():
    return FakeRenderer


@pytest.fixture
def landing_dir(tmp_path):
    """A small local landing page with one linked stylesheet and one inline block"""
    css_dir = tmp_path / "css"
    css_dir.mkdir()
    (css_dir / "site.css").write_text(
        ".hero { color: red; }\n.unused-banner { color: blue; }\n.elementor-popup { display: none; }\n",
        encoding="utf-8",
    )
    (tmp_path / "index.html").write_text(
        "<!doctype html><html><head><title>Landing</title>"
        '<link rel="stylesheet" href="css/site.css?ver=6.4">'
        '<link rel="preload" href="font.woff2" as="font">'
        "<style>p { margin: 0; }</style>"
        '<script src="app.js"></script>'
        "</head><body>"
        '<section class="hero"><p>Hello</p></section>'
        "<script>console.log(1)</script>"
        "</body></html>",
        encoding="utf-8",
    )
    return tmp_path
