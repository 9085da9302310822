"""
Usage Analyzer / Pruner
-----------------------
Removes CSS rules whose selectors reference nothing found in the markup.

Usage detection is a pattern scan over the raw markup text, not a DOM walk:
class and id attribute values, tag names and data-* attribute names. Classes
added by scripts at runtime cannot be seen this way, so a safelist of exact
names and prefixes protects the component frameworks that inject them.
"""

import re

from landing_slimmer.cssblocks import Block, parse_blocks, serialize_blocks, split_selectors
from landing_slimmer.log import get_logger
from landing_slimmer.models import Safelist

log = get_logger("prune")

# Framework prefixes whose classes are toggled by scripts:
# Elementor, WooCommerce, CartFlows, Astra, WordPress core, Swiper,
# Select2, Dashicons, Spectra (UAGB), CartFlows Pro and Contact Form 7
SAFE_PREFIXES = (
    "elementor", "e-", "woocommerce", "cartflows", "wcf", "ast-", "wp-",
    "swiper", "select2", "dashicons", "uagb", "cfp-", "wpcf7",
)

# A user safelist entry ending with one of these is a prefix
PREFIX_SEPARATORS = ("-", "_")

# Markup patterns
CLASS_ATTR = re.compile(r'\bclass\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)
ID_ATTR = re.compile(r'\bid\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)
TAG_NAME = re.compile(r'</?([a-z0-9-]+)', re.IGNORECASE)
DATA_ATTR = re.compile(r'\s(data-[a-z0-9-]+)', re.IGNORECASE)

# Selector patterns
SEL_ATTRIBUTE = re.compile(r'\[\s*([^\]\s=~|^$*]+)[^\]]*\]')
SEL_CLASS_OR_ID = re.compile(r'[.#]((?:\\.|[\w-])+)')
SEL_PSEUDO = re.compile(r'::?[\w-]+')
SEL_TAG = re.compile(r'(?:^|[\s>+~,(])([a-zA-Z][\w-]*)')
CSS_ESCAPE = re.compile(r'\\(.)')


def parse_safelist(value):
    """Split a comma-separated safelist argument into entries"""
    if not value:
        return []
    return [s.strip() for s in value.split(",") if s.strip()]


def build_safelist(extra=()):
    """Baseline framework safelist plus user entries.

    "my-prefix-" becomes the prefix "my-prefix"; anything else is an exact name.
    """
    extra = list(extra)
    standard = set(SAFE_PREFIXES)
    prefixes = list(SAFE_PREFIXES)
    for entry in extra:
        if entry.endswith(PREFIX_SEPARATORS):
            prefix = entry[:-1]
            if prefix:
                prefixes.append(prefix)
        else:
            standard.add(entry)
    return Safelist(standard=frozenset(standard), prefixes=tuple(prefixes))


def extract_usage_tokens(markup):
    """Classes, ids, tag names and data-* attribute names found in markup text"""
    tokens = set()
    for match in CLASS_ATTR.findall(markup):
        tokens.update(match.split())
    for match in ID_ATTR.findall(markup):
        tokens.add(match.strip())
    tokens.update(tag.lower() for tag in TAG_NAME.findall(markup))
    tokens.update(name.lower() for name in DATA_ATTR.findall(markup))
    tokens.discard("")
    return tokens


def selector_tokens(selector_text):
    """Tokens a single selector references: classes, ids, tags, data-* attributes"""
    tokens = set()

    for name in SEL_ATTRIBUTE.findall(selector_text):
        if name.lower().startswith("data-"):
            tokens.add(name.lower())
    text = SEL_ATTRIBUTE.sub("", selector_text)

    for name in SEL_CLASS_OR_ID.findall(text):
        tokens.add(CSS_ESCAPE.sub(r'\1', name))
    text = SEL_CLASS_OR_ID.sub("", text)

    text = SEL_PSEUDO.sub("", text)
    tokens.update(tag.lower() for tag in SEL_TAG.findall(text))
    return tokens


def is_selector_used(selector_text, used, safelist):
    tokens = selector_tokens(selector_text)
    # *, :root, [type=text] and friends reference nothing we can check
    if not tokens:
        return True
    return any(token in used or safelist.protects(token) for token in tokens)


def _prune_blocks(blocks, used, safelist, stats):
    """Pruned copy of a block list; walks into @media, @supports, @layer and @container."""
    kept_blocks = []
    for block in blocks:
        if block.is_style_rule:
            selectors = split_selectors(block.prelude)
            kept = [s for s in selectors if is_selector_used(s, used, safelist)]
            if not kept:
                stats["removed"] += 1
                continue
            stats["kept"] += 1
            prelude = block.prelude if len(kept) == len(selectors) else ", ".join(kept)
            # Nested rules stay with their parent
            kept_blocks.append(Block(prelude, block.body))
        elif block.is_grouping:
            inner = _prune_blocks(parse_blocks(block.body), used, safelist, stats)
            if inner:
                kept_blocks.append(Block(block.prelude, "\n" + serialize_blocks(inner) + "\n"))
        else:
            # @font-face, @keyframes, @import, @page and unknown at-rules stay
            kept_blocks.append(block)
    return kept_blocks


def prune_css(markup, css, safelist=None, extractor=extract_usage_tokens):
    """Return a new stylesheet holding only rules reachable from the markup.

    Kept rules are copied as source text; only whole rules and selectors of a
    selector list are removed.
    """
    if safelist is None:
        safelist = build_safelist()
    used = set(extractor(markup))
    log.info("Found %d usage tokens in markup", len(used))

    stats = {"kept": 0, "removed": 0}
    blocks = _prune_blocks(parse_blocks(css), used, safelist, stats)
    log.info("Pruned CSS: kept %d rules, removed %d unused rules", stats["kept"], stats["removed"])

    return serialize_blocks(blocks)
