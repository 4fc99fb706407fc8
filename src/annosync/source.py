"""Interfaces to the design document and to per-item key/value storage.

Walking a live design-tool tree is the host's job; annosync only needs an
object that hands out pages of :class:`AnnotatedItem` values and a tiny
key/value store for the sync records. ``JsonDocumentSource`` reads a JSON
snapshot exported from the design tool so the CLI works outside the host.

Snapshot layout::

    {
      "fileKey": "abc123",               # optional
      "name": "Checkout flows",
      "currentPage": "0:1",
      "categories": [{"id": "cat-qa", "label": "QA"}],
      "pages": [
        {"id": "0:1", "name": "Page 1", "items": [
          {"id": "1:2", "name": "Button", "type": "INSTANCE",
           "componentName": "Button", "fields": {...},
           "instanceProperties": {"Size#12:0": {"value": "Large"}},
           "ancestors": [{"id": "1:1", "name": "Checkout", "type": "FRAME"},
                         {"id": "0:1", "name": "Page 1", "type": "PAGE"}],
           "annotations": [{"categoryId": "cat-qa", "labelMarkdown": "...",
                            "properties": [{"type": "padding"}]}]}
        ]}
      ]
    }

A field whose value is a mixed selection (several fonts in one text run,
for instance) is exported as the marker ``{"mixed": true}`` and reads back
as :data:`annosync.properties.MIXED`.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from .errors import ConfigurationError
from .logging import get_logger
from .models import AncestorRef, AnnotatedItem, Annotation, AnnotationCategory, Scope
from .properties import MIXED

MIXED_MARKER = {"mixed": True}


@dataclass
class SourcePage:
    id: str
    name: str
    items: Sequence[AnnotatedItem] = field(default_factory=list)


class AnnotationSource(Protocol):  # pragma: no cover - interface only
    @property
    def file_key(self) -> str | None: ...

    @property
    def document_name(self) -> str: ...

    def categories(self) -> Sequence[AnnotationCategory]: ...

    def load_all(self) -> None: ...

    def pages(self, scope: Scope) -> Sequence[SourcePage]: ...


class KeyValueStore(Protocol):  # pragma: no cover - interface only
    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...


def iter_items(source: AnnotationSource, scope: Scope) -> Iterator[AnnotatedItem]:
    for page in source.pages(scope):
        yield from page.items


# ---- key/value stores ------------------------------------------------------


class InMemoryKeyValueStore:
    def __init__(self, initial: Mapping[str, bytes] | None = None) -> None:
        self._data: dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = value

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileKeyValueStore:
    """Key/value blobs kept in one JSON document, rewritten atomically on change."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._data: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw: Any = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            get_logger().warning("sync state unreadable; starting empty", path=str(self.path), error=str(exc))
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def get(self, key: str) -> bytes | None:
        value = self._data.get(key)
        return value.encode("utf-8") if value is not None else None

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = value.decode("utf-8")
        self._persist()

    def keys(self) -> list[str]:
        return list(self._data)

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        tmp.replace(self.path)


# ---- JSON snapshot source --------------------------------------------------


def _coerce_annotation(raw: Mapping[str, Any]) -> Annotation:
    props: list[str] = []
    for entry in raw.get("properties") or []:
        if isinstance(entry, Mapping) and isinstance(entry.get("type"), str):
            props.append(entry["type"])
        elif isinstance(entry, str):
            props.append(entry)
    category = raw.get("categoryId")
    return Annotation(
        category_id=str(category) if category is not None else None,
        label_markdown=raw.get("labelMarkdown") if isinstance(raw.get("labelMarkdown"), str) else None,
        label=raw.get("label") if isinstance(raw.get("label"), str) else None,
        properties=tuple(props),
    )


def _coerce_ancestor(raw: Mapping[str, Any]) -> AncestorRef:
    component = raw.get("componentName")
    return AncestorRef(
        id=str(raw.get("id", "")),
        name=str(raw.get("name", "")),
        node_type=str(raw.get("type", "")),
        component_name=component if isinstance(component, str) else None,
    )


def _coerce_fields(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        return {}
    return {str(k): MIXED if v == MIXED_MARKER else v for k, v in raw.items()}


def _coerce_item(raw: Mapping[str, Any]) -> AnnotatedItem:
    instance_props = raw.get("instanceProperties")
    component = raw.get("componentName")
    return AnnotatedItem(
        id=str(raw["id"]),
        name=str(raw.get("name", "")),
        node_type=str(raw.get("type", "")),
        annotations=[
            _coerce_annotation(a) for a in raw.get("annotations") or [] if isinstance(a, Mapping)
        ],
        fields=_coerce_fields(raw.get("fields")),
        ancestors=[
            _coerce_ancestor(a) for a in raw.get("ancestors") or [] if isinstance(a, Mapping)
        ],
        component_name=component if isinstance(component, str) else None,
        instance_properties=dict(instance_props) if isinstance(instance_props, Mapping) else {},
    )


class JsonDocumentSource:
    def __init__(self, document: Mapping[str, Any]) -> None:
        self._document = document
        self._pages: list[SourcePage] = []
        for raw_page in document.get("pages") or []:
            if not isinstance(raw_page, Mapping):
                continue
            items = [
                _coerce_item(i)
                for i in raw_page.get("items") or []
                if isinstance(i, Mapping) and "id" in i
            ]
            self._pages.append(
                SourcePage(id=str(raw_page.get("id", "")), name=str(raw_page.get("name", "")), items=items)
            )
        self._categories = [
            AnnotationCategory(id=str(c["id"]), label=str(c.get("label", "")))
            for c in document.get("categories") or []
            if isinstance(c, Mapping) and "id" in c
        ]

    @classmethod
    def from_path(cls, path: str | Path) -> JsonDocumentSource:
        p = Path(path)
        if not p.exists():
            raise ConfigurationError(f"Design snapshot not found: {p}")
        try:
            raw = json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Design snapshot is not valid JSON: {p}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Design snapshot must be a JSON object: {p}")
        return cls(raw)

    @property
    def file_key(self) -> str | None:
        key = self._document.get("fileKey")
        return key if isinstance(key, str) and key else None

    @property
    def document_name(self) -> str:
        return str(self._document.get("name", ""))

    def categories(self) -> Sequence[AnnotationCategory]:
        return list(self._categories)

    def load_all(self) -> None:
        # snapshots are fully materialised already
        return None

    def pages(self, scope: Scope) -> Sequence[SourcePage]:
        if scope is Scope.ALL:
            return list(self._pages)
        current = self._document.get("currentPage")
        for page in self._pages:
            if page.id == current:
                return [page]
        return self._pages[:1]


__all__ = [
    "AnnotationSource",
    "KeyValueStore",
    "SourcePage",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "JsonDocumentSource",
    "iter_items",
]
