"""
XML helpers for network documents.

Navigation by element name and index, attribute extraction with typed
defaults, safe parsing of untrusted documents and pretty printing.
"""

from __future__ import annotations

from xml.etree.ElementTree import Element, ParseError, tostring

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as SafeET

from brain.core.validation import PersistenceError

_REQUIRED = object()


def parse_document(text: str | bytes) -> Element:
    """
    Parse an XML document, rejecting entity expansion and DTD tricks.

    Raises:
        PersistenceError: If the document is not well-formed or unsafe
    """
    try:
        return SafeET.fromstring(text)
    except (ParseError, DefusedXmlException) as e:
        raise PersistenceError(f"cannot parse network document: {e}") from e


def indent_xml(elem: Element, level: int = 0) -> None:
    """Add indentation to XML tree for readability."""
    indent = "\n" + "  " * level
    if len(elem):
        if not elem.text or not elem.text.strip():
            elem.text = indent + "  "
        if not elem.tail or not elem.tail.strip():
            elem.tail = indent
        for child in elem:
            indent_xml(child, level + 1)
        if not child.tail or not child.tail.strip():
            child.tail = indent
    else:
        if level and (not elem.tail or not elem.tail.strip()):
            elem.tail = indent


def to_document(root: Element) -> str:
    """Render an element as an indented XML document string."""
    indent_xml(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + tostring(root, encoding="unicode") + "\n"


def is_node_with_name(node: Element | None, name: str) -> bool:
    return node is not None and node.tag == name


def get_children(node: Element, name: str) -> list[Element]:
    """Direct children with a given tag, in document order."""
    return [child for child in node if child.tag == name]


def get_child(node: Element, name: str, index: int = 0) -> Element | None:
    """The ``index``-th direct child with a given tag, or None."""
    children = get_children(node, name)
    if 0 <= index < len(children):
        return children[index]
    return None


def _describe(node: Element, key: str | None = None) -> str:
    return f"<{node.tag}> attribute '{key}'" if key else f"<{node.tag}> content"


def get_float(node: Element, key: str, default: float | object = _REQUIRED) -> float:
    """
    Read a float attribute.

    Args:
        node: Element to read from
        key: Attribute name
        default: Value for a missing attribute; required when omitted

    Raises:
        PersistenceError: If the attribute is malformed, or missing
            without a default
    """
    raw = node.get(key)
    if raw is None:
        if default is _REQUIRED:
            raise PersistenceError(f"missing {_describe(node, key)}")
        return default  # type: ignore[return-value]
    try:
        return float(raw)
    except ValueError as e:
        raise PersistenceError(f"malformed {_describe(node, key)}: {raw!r}") from e


def get_int(node: Element, key: str, default: int | None | object = _REQUIRED) -> int | None:
    """Read an integer attribute; same rules as ``get_float``."""
    raw = node.get(key)
    if raw is None:
        if default is _REQUIRED:
            raise PersistenceError(f"missing {_describe(node, key)}")
        return default  # type: ignore[return-value]
    try:
        return int(raw)
    except ValueError as e:
        raise PersistenceError(f"malformed {_describe(node, key)}: {raw!r}") from e


def get_content_float(node: Element) -> float:
    """Read the text content of an element as a float."""
    raw = (node.text or "").strip()
    try:
        return float(raw)
    except ValueError as e:
        raise PersistenceError(f"malformed {_describe(node)}: {raw!r}") from e


def format_float(value: float) -> str:
    """Shortest text that parses back to exactly ``value``."""
    return repr(float(value))
