"""Per-item record of signatures already confirmed by the sync endpoint.

Each item owns one blob holding a JSON array of signature strings. Records
only grow; ``reset`` is the single way to shrink one and it clears it fully.
Concurrent runs are not coordinated: read-then-write is advisory, and the
worst case is one duplicate issue.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .source import KeyValueStore

SYNC_RECORD_KEY = "qaIssueSynced"


@dataclass
class SyncStateSummary:
    items: int = 0
    signatures: int = 0


def _record_key(item_id: str) -> str:
    return f"{SYNC_RECORD_KEY}:{item_id}"


def _parse_record(blob: bytes | None) -> list[str] | None:
    """Return the stored signatures, None when the blob is unreadable."""
    if not blob:
        return []
    try:
        parsed: Any = json.loads(blob.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(parsed, list):
        return None
    return [s for s in parsed if isinstance(s, str)]


class SyncStateTracker:
    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def has_record(self, item_id: str) -> bool:
        return bool(self.store.get(_record_key(item_id)))

    def signatures(self, item_id: str) -> list[str]:
        return _parse_record(self.store.get(_record_key(item_id))) or []

    def is_synced(self, item_id: str, signature: str) -> bool:
        return signature in self.signatures(item_id)

    def mark_synced(self, item_id: str, signature: str) -> bool:
        """Append ``signature`` to the item's record; False if it was already there."""
        current = self.signatures(item_id)
        if signature in current:
            return False
        current.append(signature)
        self.store.set(_record_key(item_id), json.dumps(current).encode("utf-8"))
        return True

    def recorded_item_ids(self) -> list[str]:
        """Ids with a non-empty record, for stores that can list their keys."""
        keys = getattr(self.store, "keys", None)
        if keys is None:
            return []
        prefix = _record_key("")
        return [
            key[len(prefix):]
            for key in keys()
            if key.startswith(prefix) and self.store.get(key)
        ]

    def reset(self, item_id: str) -> bool:
        if not self.has_record(item_id):
            return False
        self.store.set(_record_key(item_id), b"")
        return True

    def summarize(self, item_ids: Iterable[str]) -> SyncStateSummary:
        summary = SyncStateSummary()
        for item_id in item_ids:
            blob = self.store.get(_record_key(item_id))
            if not blob:
                continue
            summary.items += 1
            parsed = _parse_record(blob)
            # an unreadable record still stands for one synced entry
            summary.signatures += len(parsed) if parsed is not None else 1
        return summary


__all__ = ["SyncStateTracker", "SyncStateSummary", "SYNC_RECORD_KEY"]
