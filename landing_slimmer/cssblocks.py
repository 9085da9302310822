"""
CSS Block Splitter
------------------
Splits stylesheet text into top-level blocks without interpreting them:
style rules (selector prelude + raw declaration body), block at-rules
(@media, @supports, @font-face ...) and statement at-rules (@import ...;).

Bodies are kept as the original source text, so constructs a CSS object
model cannot represent (nesting, @layer, @container, :is() selector lists)
pass through unchanged. Strings, comments and backslash escapes are
respected when looking for braces, semicolons and commas.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

# At-rules whose body is itself a list of rules
GROUPING_AT_RULES = frozenset({
    "media", "supports", "layer", "container", "document", "-moz-document",
    "scope", "starting-style",
})

AT_NAME = re.compile(r'@([\w-]+)')
HEX_ESCAPE = re.compile(r'[0-9a-fA-F]{1,6}\s?')
QUOTES = ("'", '"')
# No whitespace is needed next to these when compacting
TIGHT_CHARS = "{};,>"


class CssSyntaxError(ValueError):
    """Unbalanced braces, or an unterminated comment or string"""


@dataclass
class Block:
    prelude: str
    body: Optional[str] = None  # None for statement at-rules

    @property
    def at_name(self):
        if not self.prelude.startswith("@"):
            return None
        match = AT_NAME.match(self.prelude)
        return match.group(1).lower() if match else ""

    @property
    def is_style_rule(self):
        return self.at_name is None and self.body is not None

    @property
    def is_grouping(self):
        return self.body is not None and self.at_name in GROUPING_AT_RULES

    def text(self):
        if self.body is None:
            return f"{self.prelude};"
        return f"{self.prelude}{{{self.body}}}"


def _skip_comment(css, i, strict):
    end = css.find("*/", i + 2)
    if end == -1:
        if strict:
            raise CssSyntaxError(f"Unterminated comment at offset {i}")
        return len(css)
    return end + 2


def _skip_string(css, i, strict):
    quote = css[i]
    j = i + 1
    while j < len(css):
        c = css[j]
        if c == "\\":
            j += 2
            continue
        if c == quote:
            return j + 1
        if c == "\n":
            break
        j += 1
    if strict:
        raise CssSyntaxError(f"Unterminated string at offset {i}")
    return min(j, len(css))


def _block_end(css, i, strict):
    """Index of the brace closing the block whose body starts at i, or -1"""
    depth = 1
    while i < len(css):
        c = css[i]
        if css.startswith("/*", i):
            i = _skip_comment(css, i, strict)
            continue
        if c in QUOTES:
            i = _skip_string(css, i, strict)
            continue
        if c == "\\":
            i += 2
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def parse_blocks(css, strict=False) -> List[Block]:
    """Split stylesheet text into top-level blocks.

    Comments between blocks are dropped. In strict mode malformed text raises
    CssSyntaxError; otherwise it is recovered the way browsers do: an
    unclosed block runs to the end of the text and stray closing braces are
    skipped.
    """
    blocks = []
    prelude = []
    i = 0
    while i < len(css):
        c = css[i]
        if css.startswith("/*", i):
            i = _skip_comment(css, i, strict)
            prelude.append(" ")
            continue
        if c in QUOTES:
            j = _skip_string(css, i, strict)
            prelude.append(css[i:j])
            i = j
            continue
        if c == "\\":
            prelude.append(css[i:i + 2])
            i += 2
            continue
        if c == "{":
            close = _block_end(css, i + 1, strict)
            if close == -1:
                if strict:
                    raise CssSyntaxError(f"Unclosed block at offset {i}")
                close = len(css)
            blocks.append(Block("".join(prelude).strip(), css[i + 1:close]))
            prelude = []
            i = close + 1
            continue
        if c == ";":
            text = "".join(prelude).strip()
            if text:
                blocks.append(Block(text))
            prelude = []
            i += 1
            continue
        if c == "}":
            if strict:
                raise CssSyntaxError(f"Unexpected '}}' at offset {i}")
            prelude = []
            i += 1
            continue
        prelude.append(c)
        i += 1

    if strict and "".join(prelude).strip():
        raise CssSyntaxError(f"Unexpected end of stylesheet after {''.join(prelude).strip()!r}")
    return blocks


def serialize_blocks(blocks, separator="\n"):
    return separator.join(block.text() for block in blocks)


def split_top_level(text, separator):
    """Split on a separator that is outside strings, comments, () and []"""
    parts = []
    current = []
    depth = 0
    i = 0
    while i < len(text):
        c = text[i]
        if text.startswith("/*", i):
            i = _skip_comment(text, i, False)
            continue
        if c in QUOTES:
            j = _skip_string(text, i, False)
            current.append(text[i:j])
            i = j
            continue
        if c == "\\":
            current.append(text[i:i + 2])
            i += 2
            continue
        if c in "([":
            depth += 1
        elif c in ")]":
            depth = max(depth - 1, 0)
        elif c == separator and depth == 0:
            parts.append("".join(current))
            current = []
            i += 1
            continue
        current.append(c)
        i += 1
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def split_selectors(prelude):
    return split_top_level(prelude, ",")


def has_nested_blocks(body):
    return any(block.body is not None for block in parse_blocks(body))


def compact(text):
    """Drop comments and collapse whitespace outside strings.

    Only whitespace next to braces, semicolons, commas and child combinators
    is removed entirely; everything else shrinks to a single space, so
    descendant combinators and calc() operators keep their meaning.
    """
    out = []
    pending_space = False
    i = 0

    def emit(chunk):
        nonlocal pending_space
        if pending_space and out and out[-1][-1] not in TIGHT_CHARS and chunk[0] not in TIGHT_CHARS:
            out.append(" ")
        pending_space = False
        out.append(chunk)

    while i < len(text):
        c = text[i]
        if text.startswith("/*", i):
            i = _skip_comment(text, i, True)
            pending_space = True
            continue
        if c in QUOTES:
            j = _skip_string(text, i, True)
            emit(text[i:j])
            i = j
            continue
        if c == "\\":
            match = HEX_ESCAPE.match(text, i + 1)
            j = match.end() if match else min(i + 2, len(text))
            emit(text[i:j])
            i = j
            continue
        if c.isspace():
            pending_space = True
            i += 1
            continue
        emit(c)
        i += 1
    return "".join(out)
