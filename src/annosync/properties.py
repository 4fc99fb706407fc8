"""Property-kind -> value extractors used in issue bodies.

Annotations reference node properties by kind (``padding``, ``fontFamily``
...). Each kind maps to an extractor; kinds without an entry fall back to a
plain field lookup. An extractor returns None when the item carries no value
for that kind, and the body simply leaves it out.
"""

from __future__ import annotations

import json
import math
from collections.abc import Callable, Mapping
from typing import Any

from .models import AnnotatedItem


class _Mixed:
    """Sentinel for properties whose value differs across a selection."""

    def __repr__(self) -> str:
        return "MIXED"


MIXED = _Mixed()

PropertyExtractor = Callable[[AnnotatedItem, str, str], "str | None"]


def _format_number(value: float) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_value(value: Any) -> str:
    if value is MIXED:
        return "MIXED"
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return _format_number(value)
    if isinstance(value, Mapping) and "value" in value and "unit" in value:
        inner = value["value"]
        inner_text = _format_number(inner) if isinstance(inner, int | float) else str(inner)
        return f"{inner_text}{value['unit']}"
    try:
        return json.dumps(value, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return str(value)


def _main_component(item: AnnotatedItem, kind: str, component_name: str) -> str | None:
    return component_name


def _padding(item: AnnotatedItem, kind: str, component_name: str) -> str | None:
    sides = ("paddingTop", "paddingRight", "paddingBottom", "paddingLeft")
    if not any(
        isinstance(item.fields.get(s), int | float) and not isinstance(item.fields.get(s), bool)
        for s in sides
    ):
        return None
    top, right, bottom, left = (format_value(item.fields.get(s)) for s in sides)
    return f"top:{top}, right:{right}, bottom:{bottom}, left:{left}"


def _align_items(item: AnnotatedItem, kind: str, component_name: str) -> str | None:
    primary = item.fields.get("primaryAxisAlignItems")
    counter = item.fields.get("counterAxisAlignItems")
    if not primary and not counter:
        return None
    return f"primary:{format_value(primary)}, counter:{format_value(counter)}"


def _font_part(part: str) -> PropertyExtractor:
    def extract(item: AnnotatedItem, kind: str, component_name: str) -> str | None:
        if item.node_type != "TEXT":
            return None
        font = item.fields.get("fontName")
        if font is MIXED:
            return "MIXED"
        if isinstance(font, Mapping):
            value = font.get(part)
            return str(value) if value is not None else None
        return None

    return extract


def _generic_field(item: AnnotatedItem, kind: str, component_name: str) -> str | None:
    if kind not in item.fields:
        return None
    return format_value(item.fields[kind]) or None


PROPERTY_EXTRACTORS: dict[str, PropertyExtractor] = {
    "mainComponent": _main_component,
    "padding": _padding,
    "alignItems": _align_items,
    "fontFamily": _font_part("family"),
    "fontStyle": _font_part("style"),
}


def extract_property(item: AnnotatedItem, kind: str, component_name: str) -> str | None:
    extractor = PROPERTY_EXTRACTORS.get(kind, _generic_field)
    return extractor(item, kind, component_name)


def annotation_properties(
    item: AnnotatedItem, kinds: tuple[str, ...], component_name: str
) -> list[tuple[str, str]]:
    lines: list[tuple[str, str]] = []
    for kind in kinds:
        value = extract_property(item, kind, component_name)
        if value:
            lines.append((kind, value))
    return lines


def component_properties(item: AnnotatedItem) -> list[tuple[str, str]]:
    """Instance properties with the ``#id`` suffix dropped; later duplicates win."""
    normalized: dict[str, str] = {}
    for raw_name, meta in item.instance_properties.items():
        base = str(raw_name).split("#")[0]
        value = meta.get("value") if isinstance(meta, Mapping) else meta
        formatted = format_value(value)
        if not formatted:
            continue
        normalized[base] = formatted
    return list(normalized.items())


__all__ = [
    "MIXED",
    "PROPERTY_EXTRACTORS",
    "annotation_properties",
    "component_properties",
    "extract_property",
    "format_value",
]
