from __future__ import annotations

from typing import Optional

from lxml import etree

from ..errors import ParseError


_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=True)


def parse_xml(body: str) -> etree._Element:
    """
    Parse a GlobalProtect XML response body.

    Bodies often carry an `<?xml ... encoding="utf-8"?>` declaration, which lxml refuses on `str`
    input, so the text is re-encoded before parsing.
    """
    text = (body or "").strip()
    if not text:
        raise ParseError("empty XML response body")
    try:
        root = etree.fromstring(text.encode("utf-8"), parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"malformed XML response: {e}") from e
    if root is None:
        raise ParseError("XML response has no root element")
    return root


def try_parse_xml(body: str) -> Optional[etree._Element]:
    try:
        return parse_xml(body)
    except ParseError:
        return None


def descendant_text(element: etree._Element, tag: str) -> Optional[str]:
    """Text of the first descendant named `tag` (stripped), or None if absent or empty."""
    node = element.find(f".//{tag}")
    if node is None or node.text is None:
        return None
    text = node.text.strip()
    return text or None


def descendant_texts(element: etree._Element, tag: str) -> list[str]:
    """Texts of every descendant named `tag`, in document order; empty elements yield ""."""
    return [(node.text or "") for node in element.iter(tag)]
