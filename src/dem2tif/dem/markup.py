"""Generic XML-to-tree conversion and prefix-tolerant element lookup."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Mapping

from dem2tif.errors import MalformedMarkupError

TEXT_KEY = "#text"
ATTRIBUTE_PREFIX = "@"


def _qualified_name(tag: str, prefixes: Mapping[str, str]) -> str:
    """Rewrite an ElementTree ``{uri}local`` tag back to ``prefix:local``."""
    if not tag.startswith("{"):
        return tag
    uri, local = tag[1:].split("}", 1)
    prefix = prefixes.get(uri)
    if prefix:
        return f"{prefix}:{local}"
    return local


def _to_node(element: ET.Element, prefixes: Mapping[str, str]) -> Any:
    """Convert an element into a string leaf or a nested dict."""
    text = (element.text or "").strip()
    children = list(element)
    if not children and not element.attrib:
        return text
    node: dict[str, Any] = {}
    for key, value in element.attrib.items():
        node[ATTRIBUTE_PREFIX + _qualified_name(key, prefixes)] = value
    for child in children:
        key = _qualified_name(child.tag, prefixes)
        value = _to_node(child, prefixes)
        if key not in node:
            node[key] = value
        elif isinstance(node[key], list):
            node[key].append(value)
        else:
            node[key] = [node[key], value]
    if text:
        node[TEXT_KEY] = text
    return node


def parse_markup(text: str) -> dict[str, Any]:
    """Parse XML text into a nested dict keyed by element names as written.

    Element names keep the namespace prefix used in the document (for
    example ``gml:high``); elements in the default namespace use their bare
    local name. Leaf elements without attributes become their stripped text.
    """
    parser = ET.XMLPullParser(events=("start-ns", "start"))
    prefixes: dict[str, str] = {}
    root: ET.Element | None = None
    try:
        parser.feed(text)
        parser.close()
        for event, payload in parser.read_events():
            if event == "start-ns":
                prefix, uri = payload
                prefixes.setdefault(uri, prefix)
            elif root is None:
                root = payload
    except ET.ParseError as exc:
        raise MalformedMarkupError(f"Malformed XML: {exc}") from exc
    if root is None:
        raise MalformedMarkupError("Malformed XML: document has no root element")
    return {_qualified_name(root.tag, prefixes): _to_node(root, prefixes)}


def get_either(node: Any, prefixed: str, bare: str) -> Any:
    """Return ``node[prefixed]`` or ``node[bare]``, or None when neither exists."""
    if not isinstance(node, Mapping):
        return None
    value = node.get(prefixed)
    if value is None:
        value = node.get(bare)
    return value


def node_text(value: Any) -> str | None:
    """Return the text content of a tree value, whether leaf or dict."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        text = value.get(TEXT_KEY)
        return text if isinstance(text, str) else None
    return None
