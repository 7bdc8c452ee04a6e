# -*- coding: utf-8 -*-
"""Un-escaping of calendar text values: HTML entities, backslash escapes and markup."""
from __future__ import annotations

import re


_BACKSLASH_PLACEHOLDER = "\x00BACKSLASH\x00"

_DECIMAL_ENTITY = re.compile(r"&#(\d+);")
_HEX_ENTITY = re.compile(r"&#x([0-9a-fA-F]+);")

NAMED_ENTITIES: dict[str, str] = {
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "nbsp": " ",
    "ndash": "–",
    "mdash": "—",
    "ldquo": '"',
    "rdquo": '"',
    "lsquo": "'",
    "rsquo": "'",
}
_NAMED_ENTITY = re.compile(r"&(" + "|".join(NAMED_ENTITIES) + r");")

_HTML_TAG = re.compile(r"<[^>]*>")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")


def _codepoint(text: str, base: int, original: str) -> str:
    try:
        return chr(int(text, base))
    except (ValueError, OverflowError):
        return original


def decode_entities(raw: str) -> str:
    """Decode numeric and a fixed table of named HTML entities.

    Numeric entities (``&#233;``, ``&#xE9;``) are decoded by codepoint first,
    then the named table. Anything unrecognized is left as literal text.

    :param raw: Text possibly containing entities.
    :return: Text with known entities replaced.
    """
    text = _DECIMAL_ENTITY.sub(lambda m: _codepoint(m.group(1), 10, m.group(0)), raw)
    text = _HEX_ENTITY.sub(lambda m: _codepoint(m.group(1), 16, m.group(0)), text)
    return _NAMED_ENTITY.sub(lambda m: NAMED_ENTITIES[m.group(1)], text)


def decode_text(raw: str) -> str:
    """Decode calendar text escapes and strip markup.

    Order matters: escaped backslashes are protected first so ``\\\\n`` stays a
    literal backslash followed by ``n``.

    :param raw: An unfolded property value.
    :return: Plain text.
    """
    text = raw.replace("\\\\", _BACKSLASH_PLACEHOLDER)
    text = text.replace("\\n", "\n").replace("\\N", "\n").replace("\\r", "\r")
    text = text.replace("\\,", ",").replace("\\;", ";").replace("\\:", ":")
    text = _HTML_TAG.sub("", text)
    text = text.replace(_BACKSLASH_PLACEHOLDER, "\\")
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()
