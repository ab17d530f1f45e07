"""Decode response bodies according to their Content-Type."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from typing import Any, Dict, List

import httpx

from .exceptions import DecodeError

ATTRIBUTES_KEY = "@attributes"
TEXT_KEY = "#text"


def unwrap_response(response: httpx.Response) -> Any:
    """Return the decoded body of ``response``.

    JSON (and JavaScript) bodies become Python data, XML bodies become nested
    dicts and lists, and anything else is returned as text.
    """
    content_type = response.headers.get("Content-Type", "").lower()
    contents = response.text

    if "json" in content_type or "javascript" in content_type:
        if not contents.strip():
            return None
        try:
            return json.loads(contents)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"invalid JSON body: {exc}", content_type) from exc
    if "xml" in content_type:
        try:
            root = ET.fromstring(contents)
        except ET.ParseError as exc:
            raise DecodeError(f"invalid XML body: {exc}", content_type) from exc
        return xml_to_data(root)
    return contents


def _local_name(tag: str) -> str:
    return tag.rpartition("}")[2]


def xml_to_data(element: ET.Element) -> Any:
    """Convert an element's content to plain data.

    Leaves without attributes collapse to their text (``{}`` when empty),
    repeated child tags become lists, attributes are kept under
    ``"@attributes"`` and text beside attributes under ``"#text"``.
    """
    children = list(element)
    text = element.text or ""

    if not children and not element.attrib:
        return text if text.strip() else {}

    data: Dict[str, Any] = {}
    if element.attrib:
        data[ATTRIBUTES_KEY] = {_local_name(k): v for k, v in element.attrib.items()}
    if not children:
        if text.strip():
            data[TEXT_KEY] = text
        return data

    for child in children:
        tag = _local_name(child.tag)
        value = xml_to_data(child)
        if tag not in data:
            data[tag] = value
        elif isinstance(data[tag], list):
            data[tag].append(value)
        else:
            items: List[Any] = [data[tag], value]
            data[tag] = items
    return data


__all__ = ["unwrap_response", "xml_to_data"]
