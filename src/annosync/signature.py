"""Stable dedup keys for annotations.

A signature is a base-31 polynomial hash over the UTF-16 code units of
``"{item_id}|{category_id}|{body}"``, folded into an unsigned 32-bit integer
and rendered as lowercase hex. It is a dedup key, not a commitment: the only
requirement is that equal inputs always give equal output, across runs and
processes. Records written by earlier releases of the plugin stay valid
because the code-unit iteration matches theirs.
"""

from __future__ import annotations

SEPARATOR = "|"
_MULTIPLIER = 31
_MASK = 0xFFFFFFFF


def rolling_hash(value: str) -> str:
    acc = 0
    raw = value.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(raw), 2):
        unit = raw[i] | (raw[i + 1] << 8)
        acc = (acc * _MULTIPLIER + unit) & _MASK
    return format(acc, "x")


def compute_signature(item_id: str, category_id: str | None, body_text: str | None) -> str:
    return rolling_hash(SEPARATOR.join((item_id, category_id or "", body_text or "")))


__all__ = ["compute_signature", "rolling_hash", "SEPARATOR"]
