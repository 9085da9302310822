"""Tests for usage extraction, safelists and pruning."""

import pytest

from landing_slimmer.prune import (
    SAFE_PREFIXES,
    build_safelist,
    extract_usage_tokens,
    parse_safelist,
    prune_css,
    selector_tokens,
)

MARKUP = """
<html><body>
<section class="hero  hero--dark" id="top" data-theme="dark">
  <h1 class='title'>Hi</h1>
  <a href="#top" class="btn">Go</a>
</section>
</body></html>
"""


class TestExtractUsageTokens:
    def test_classes_ids_tags_and_data_attributes(self):
        tokens = extract_usage_tokens(MARKUP)
        assert {"hero", "hero--dark", "title", "btn"} <= tokens
        assert "top" in tokens
        assert {"html", "body", "section", "h1", "a"} <= tokens
        assert "data-theme" in tokens

    def test_data_attribute_value_is_ignored(self):
        tokens = extract_usage_tokens(MARKUP)
        assert "dark" not in tokens
        assert not any(t.startswith('data-theme=') for t in tokens)

    def test_tag_names_are_lowercased(self):
        assert "div" in extract_usage_tokens("<DIV>x</DIV>")


class TestSelectorTokens:
    def test_compound_selector(self):
        assert selector_tokens(".a > #b span[data-x='1']:hover") == {"a", "b", "span", "data-x"}

    def test_tag_with_class(self):
        assert selector_tokens("ul.menu li::before") == {"ul", "menu", "li"}

    def test_plain_attribute_selector_has_no_tokens(self):
        assert selector_tokens("[type=text]") == set()
        assert selector_tokens("*") == set()
        assert selector_tokens(":root") == set()

    def test_escaped_class_name(self):
        assert selector_tokens(r".md\:flex") == {"md:flex"}

    def test_attribute_value_is_not_a_class(self):
        assert selector_tokens('a[href$=".pdf"]') == {"a"}


class TestSafelist:
    def test_parse_prefix_and_exact(self):
        safelist = build_safelist(parse_safelist("my-prefix-,exact-keep"))
        assert "my-prefix" in safelist.prefixes
        assert "exact-keep" in safelist.standard
        assert "my-prefix-" not in safelist.standard
        assert safelist.protects("my-prefix-card")
        assert safelist.protects("exact-keep")
        assert not safelist.protects("exact-keeper")

    def test_baseline_prefixes_always_present(self):
        safelist = build_safelist()
        for prefix in SAFE_PREFIXES:
            assert prefix in safelist.prefixes
        assert safelist.protects("elementor-widget-container")
        assert safelist.protects("swiper-slide-active")
        assert safelist.protects("wpcf7-form")

    def test_parse_ignores_blanks(self):
        assert parse_safelist(" a, ,b ,") == ["a", "b"]
        assert parse_safelist("") == []
        assert parse_safelist(None) == []


class TestPruneCss:
    def test_unused_class_is_removed(self):
        css = ".hero { color: red; } .ghost { color: blue; }"
        result = prune_css(MARKUP, css)
        assert ".hero" in result
        assert ".ghost" not in result

    def test_used_id_tag_and_data_attribute_survive(self):
        css = "#top { margin: 0 } h1 { font-size: 2em } [data-theme] { color: black } #gone { margin: 1px }"
        result = prune_css(MARKUP, css)
        assert "#top" in result
        assert "h1" in result
        assert "[data-theme]" in result
        assert "#gone" not in result

    @pytest.mark.parametrize("selector", [".exact-keep", ".my-prefix-card", ".elementor-popup", ".woocommerce-cart"])
    def test_safelisted_rule_survives(self, selector):
        safelist = build_safelist(parse_safelist("my-prefix-,exact-keep"))
        result = prune_css(MARKUP, f"{selector} {{ color: red }}", safelist)
        assert selector in result

    def test_selector_list_is_trimmed(self):
        result = prune_css(MARKUP, ".btn, .ghost { padding: 4px }")
        assert ".btn" in result
        assert ".ghost" not in result

    def test_universal_selectors_are_kept(self):
        result = prune_css(MARKUP, "* { box-sizing: border-box } :root { color: black }")
        assert "*" in result
        assert ":root" in result

    def test_media_blocks_are_pruned_recursively(self):
        css = (
            "@media print { .ghost { display: none } }"
            "@media (max-width: 600px) { .hero { padding: 0 } .ghost { padding: 1px } }"
        )
        result = prune_css(MARKUP, css)
        assert "@media print" not in result
        assert "max-width" in result
        assert ".hero" in result
        assert ".ghost" not in result

    def test_font_face_and_keyframes_are_kept(self):
        css = (
            "@font-face { font-family: Brand; src: url(brand.woff2) }"
            "@keyframes spin { from { opacity: 0 } to { opacity: 1 } }"
        )
        result = prune_css(MARKUP, css)
        assert "@font-face" in result
        assert "spin" in result

    def test_custom_extractor(self):
        result = prune_css("<p>", ".only-from-extractor { color: red }", extractor=lambda markup: {"only-from-extractor"})
        assert ".only-from-extractor" in result

    def test_everything_unused_gives_empty_stylesheet(self):
        assert prune_css("<p>", ".a { color: red } .b { color: blue }").strip() == ""

    @pytest.mark.parametrize("at_rule", ["@supports (display: grid)", "@layer base", "@container card (min-width: 400px)"])
    def test_grouping_at_rules_are_pruned_like_media(self, at_rule):
        css = f"{at_rule} {{ .hero {{ display: grid }} .ghost {{ display: none }} }}"
        result = prune_css(MARKUP, css)
        assert result.startswith(at_rule)
        assert ".hero{ display: grid }" in result
        assert ". hero" not in result
        assert ".ghost" not in result

    def test_empty_grouping_at_rule_is_dropped(self):
        assert prune_css(MARKUP, "@supports (display: grid) { .ghost { display: grid } }") == ""

    def test_layer_statement_is_kept(self):
        assert prune_css(MARKUP, "@layer reset, base;") == "@layer reset, base;"

    @pytest.mark.parametrize("selector", [":is(.hero, .x) p", ".btn:not(.a, .b)", ":where(.ghost, .title)"])
    def test_selector_lists_inside_pseudo_classes(self, selector):
        result = prune_css(MARKUP, f"{selector} {{ color: red }}")
        assert result == f"{selector}{{ color: red }}"

    def test_commas_inside_pseudo_classes_do_not_split_the_selector_list(self):
        result = prune_css(MARKUP, ":is(.ghost, .hero) a, .ghost { color: red }")
        assert result == ":is(.ghost, .hero) a{ color: red }"

    def test_nested_rules_stay_with_their_parent(self):
        css = ".hero{color:red;& p{color:blue}}"
        assert prune_css(MARKUP, css) == css

    def test_unclosed_rule_is_recovered(self):
        result = prune_css(MARKUP, ".ghost { color: blue } .hero { color: red")
        assert result == ".hero{ color: red}"
