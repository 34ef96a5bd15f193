from __future__ import annotations

import math
import re
from xml.sax.saxutils import escape

# Characters outside the XML 1.0 Char production.
_INVALID_XML_CHARS = re.compile(r"[^\t\n\r\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]")

_ATTRIBUTE_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_xml_attribute(value: str) -> str:
    """Entity-escape ``& " ' < >`` for use inside a quoted attribute value."""
    return escape(value, _ATTRIBUTE_ENTITIES)


def sanitize_xml_content(value: str) -> str:
    """Drop every code point that is not allowed in a well-formed XML 1.0 document."""
    return _INVALID_XML_CHARS.sub("", value)


def wrap_xml_cdata(value: str) -> str:
    """Wrap text in a CDATA section, splitting any ``]]>`` so the section cannot close early."""
    body = sanitize_xml_content(value).replace("]]>", "]]]]><![CDATA[>")
    return f"<![CDATA[{body}]]>"


def normalize_token_count(value: object) -> int:
    """Coerce a token count to a non-negative int; anything unusable becomes 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return max(value, 0)
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number) or number < 0:
        return 0
    return math.trunc(number)


def to_xml_numeric_attribute(value: object) -> str:
    return escape_xml_attribute(str(normalize_token_count(value)))
