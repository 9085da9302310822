"""
CSS Minifier
------------
Semantics-preserving compression of the pruned stylesheet:
- comments and whitespace removed by cssutils' minified serializer
- repeated selectors inside one selector list dropped
- exact duplicate rules dropped, keeping the last occurrence
- adjacent rules with identical selectors merged
- empty rules dropped

Rules are minified one at a time. Grouping at-rules (@media, @supports,
@layer, @container) are walked block by block; rules cssutils cannot
represent faithfully (nested rules, :is() selector lists, unknown at-rules)
are only compacted, never rewritten.

No usage decisions are made here; that already happened in the pruner.
"""

import xml.dom
from contextlib import contextmanager

import cssutils
from cssutils.serialize import CSSSerializer, Preferences

from landing_slimmer.cssblocks import (
    Block,
    CssSyntaxError,
    compact,
    has_nested_blocks,
    parse_blocks,
    split_selectors,
    split_top_level,
)
from landing_slimmer.errors import MinifyError
from landing_slimmer.log import get_logger, route_cssutils_log

log = get_logger("minify")

route_cssutils_log()

# Block at-rules cssutils models completely
CSSUTILS_AT_RULES = {"font-face"}


@contextmanager
def minified_serializer():
    """Swap cssutils' global serializer for a minifying one, restoring it after."""
    previous = cssutils.ser
    prefs = Preferences()
    prefs.useMinified()
    # Vendor fallbacks repeat a property inside one rule
    prefs.keepAllProperties = True
    cssutils.setSerializer(CSSSerializer(prefs))
    try:
        yield
    finally:
        cssutils.setSerializer(previous)


def _compact_block(block):
    body = None if block.body is None else compact(block.body)
    return Block(compact(block.prelude), body)


def _declaration_count(body):
    return len(split_top_level(body, ";"))


def _minify_rule(block):
    """Minify one style or @font-face rule with cssutils.

    cssutils' result is used only when it still holds every selector and
    declaration of the source rule; otherwise the rule is just compacted.
    Returns None for a rule that serializes to nothing (empty rule).
    """
    if has_nested_blocks(block.body):
        return _compact_block(block)

    parser = cssutils.CSSParser(raiseExceptions=True, validate=False)
    try:
        sheet = parser.parseString(block.text())
    except xml.dom.DOMException as e:
        log.info("Keeping rule as written (%s): %s", e, block.prelude)
        return _compact_block(block)

    rules = [r for r in sheet.cssRules if r.type != r.COMMENT]
    if len(rules) != 1:
        return _compact_block(block)
    rule = rules[0]

    if len(rule.style.getProperties(all=True)) != _declaration_count(block.body):
        return _compact_block(block)
    if rule.type == rule.STYLE_RULE:
        if len(rule.selectorList) != len(split_selectors(block.prelude)):
            return _compact_block(block)
        _dedupe_selectors(rule)

    minified = parse_blocks(sheet.cssText.decode('utf-8'), strict=True)
    return minified[0] if minified else None


def _dedupe_selectors(rule):
    selectors = [s.selectorText for s in rule.selectorList]
    unique = list(dict.fromkeys(selectors))
    if len(unique) != len(selectors):
        rule.selectorText = ",".join(unique)


def _drop_duplicate_rules(blocks):
    """Remove exact duplicates; the last copy wins the cascade anyway."""
    seen = set()
    kept = []
    for block in reversed(blocks):
        if block.is_style_rule:
            key = block.text()
            if key in seen:
                continue
            seen.add(key)
        kept.append(block)
    kept.reverse()
    return kept


def _merge_adjacent_rules(blocks):
    merged = []
    for block in blocks:
        previous = merged[-1] if merged else None
        if (previous is not None and block.is_style_rule and previous.is_style_rule
                and block.prelude == previous.prelude
                and "{" not in block.body and "{" not in previous.body):
            merged[-1] = Block(previous.prelude, f"{previous.body.rstrip(';')};{block.body}")
        else:
            merged.append(block)
    return merged


def _optimize(blocks):
    minified = []
    for block in blocks:
        if block.is_style_rule or (block.body is not None and block.at_name in CSSUTILS_AT_RULES):
            block = _minify_rule(block)
        elif block.is_grouping:
            inner = _optimize(parse_blocks(block.body, strict=True))
            if not inner:
                continue
            block = Block(compact(block.prelude), "".join(b.text() for b in inner))
        else:
            block = _compact_block(block)
        if block is not None:
            minified.append(block)
    return _merge_adjacent_rules(_drop_duplicate_rules(minified))


def minify_css(css):
    """Return the minified stylesheet; malformed CSS raises MinifyError."""
    try:
        with minified_serializer():
            blocks = _optimize(parse_blocks(css, strict=True))
    except CssSyntaxError as e:
        raise MinifyError(f"Could not minify CSS: {e}") from e

    minified = "".join(block.text() for block in blocks)
    log.info("Minified CSS: %d -> %d bytes", len(css), len(minified))
    return minified
