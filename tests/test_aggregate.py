"""Tests for stylesheet collection and aggregation."""

import os

from landing_slimmer.aggregate import aggregate_css, collect_style_sources
from landing_slimmer.loaders import SourceLoader, local_css_path, resolve_url
from landing_slimmer.models import Outcome, StyleSource

BASE = "https://example.com"

PAGE = """
<html><head>
<link rel="stylesheet" href="/a.css">
<style>.inline-one { color: red; }</style>
<link rel="stylesheet" href="b.css" media="print">
<link rel="stylesheet" href="https://cdn.example.net/c.css" media="all">
<link rel="icon" href="/favicon.ico">
</head><body>
<style>.inline-two { color: blue; }</style>
<link rel="stylesheet" href="//static.example.org/d.css">
</body></html>
"""

URLS = {
    "https://example.com/a.css": ".rule-a { color: red; }",
    "https://example.com/b.css": ".rule-b { color: red; }",
    "https://cdn.example.net/c.css": ".rule-c { color: red; }",
    "https://static.example.org/d.css": ".rule-d { color: red; }",
}


class TestResolveUrl:
    def test_absolute_passes_through(self):
        assert resolve_url("http://cdn.example.net/x.css", BASE) == "http://cdn.example.net/x.css"

    def test_protocol_relative_inherits_scheme(self):
        assert resolve_url("//cdn.example.net/x.css", "http://example.com") == "http://cdn.example.net/x.css"

    def test_relative_resolves_against_base(self):
        assert resolve_url("css/x.css", BASE) == "https://example.com/css/x.css"
        assert resolve_url("/css/x.css", BASE + "/deep/page") == "https://example.com/css/x.css"

    def test_data_and_empty_are_ignored(self):
        assert resolve_url("data:text/css,.a{}", BASE) is None
        assert resolve_url("", BASE) is None


class TestLocalCssPath:
    def test_strips_query_and_decodes(self, tmp_path):
        doc = str(tmp_path / "index.html")
        assert local_css_path("css/my%20site.css?ver=2#x", doc) == os.path.join(str(tmp_path), "css", "my site.css")

    def test_root_relative_uses_document_directory(self, tmp_path):
        doc = str(tmp_path / "index.html")
        assert local_css_path("/css/a.css", doc) == os.path.join(str(tmp_path), "css", "a.css")


class TestCollectStyleSources:
    def test_order_is_linked_then_inline(self, fake_loader):
        sources, skipped = collect_style_sources(PAGE, BASE, fake_loader(urls=URLS))
        css = aggregate_css(sources)

        positions = [css.index(name) for name in
                     ("rule-a", "rule-b", "rule-c", "rule-d", "inline-one", "inline-two")]
        assert positions == sorted(positions)
        assert skipped == []

    def test_inline_sources_have_no_url(self, fake_loader):
        sources, _ = collect_style_sources(PAGE, BASE, fake_loader(urls=URLS))
        assert [s.is_inline for s in sources] == [False, False, False, False, True, True]

    def test_print_media_is_wrapped(self, fake_loader):
        sources, _ = collect_style_sources(PAGE, BASE, fake_loader(urls=URLS))
        css = aggregate_css(sources)
        assert "@media print{\n.rule-b { color: red; }\n}" in css

    def test_all_media_is_not_wrapped(self, fake_loader):
        sources, _ = collect_style_sources(PAGE, BASE, fake_loader(urls=URLS))
        css = aggregate_css(sources)
        assert "@media all" not in css
        assert ".rule-c { color: red; }" in css

    def test_unreachable_stylesheet_is_skipped(self, fake_loader):
        urls = dict(URLS)
        del urls["https://example.com/b.css"]
        sources, skipped = collect_style_sources(PAGE, BASE, fake_loader(urls=urls))

        assert len(sources) == 5
        assert len(skipped) == 1
        assert skipped[0].outcome is Outcome.SKIPPED
        assert "b.css" in skipped[0].message

    def test_empty_stylesheet_is_skipped(self, fake_loader):
        urls = dict(URLS, **{"https://example.com/a.css": "  \n"})
        sources, skipped = collect_style_sources(PAGE, BASE, fake_loader(urls=urls))
        assert "https://example.com/a.css" not in [s.url for s in sources]
        assert len(skipped) == 1

    def test_data_href_is_not_fetched(self, fake_loader):
        html = '<link rel="stylesheet" href="data:text/css,.x{}">'
        loader = fake_loader()
        sources, skipped = collect_style_sources(html, BASE, loader)
        assert sources == []
        assert loader.requested == []
        assert len(skipped) == 1

    def test_local_document_reads_relative_css_from_disk(self, landing_dir):
        html = (landing_dir / "index.html").read_text(encoding="utf-8")
        sources, skipped = collect_style_sources(
            html, BASE, SourceLoader(), document_path=str(landing_dir / "index.html")
        )
        assert skipped == []
        assert ".hero" in sources[0].css
        assert sources[1].css == "p { margin: 0; }"

    def test_local_document_still_fetches_absolute_urls(self, fake_loader, tmp_path):
        html = '<link rel="stylesheet" href="https://cdn.example.net/c.css">'
        loader = fake_loader(urls=URLS)
        sources, _ = collect_style_sources(html, BASE, loader, document_path=str(tmp_path / "index.html"))
        assert loader.requested == ["https://cdn.example.net/c.css"]
        assert sources[0].url == "https://cdn.example.net/c.css"


class TestStyleSource:
    def test_wrapped_keeps_media_query_text(self):
        source = StyleSource(css=".a{}", url="https://example.com/a.css", media="(max-width: 600px)")
        assert source.wrapped() == "@media (max-width: 600px){\n.a{}\n}"

    def test_media_all_is_case_insensitive(self):
        assert StyleSource(css=".a{}", url="x", media="ALL").wrapped() == ".a{}"
