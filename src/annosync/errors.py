"""Error taxonomy & redaction.

Sync runs fail in five distinguishable ways and each one has a different
effect on local state:

- ``config``            missing endpoint / owner / repo / file key; no network call
- ``resolution``        the annotation category does not exist; run aborted
- ``transport.*``       timeout or unreachable endpoint; nothing recorded
- ``remote.rejected``   the endpoint answered with a non-2xx status; nothing recorded
- ``remote.partial``    some items failed inside a 200 response; only they stay unrecorded

Public API:
- classify_error(exc) -> ErrorInfo
- classify_outcome(outcome) -> ErrorInfo | None
- redact(text, extra_secrets=()) -> str
"""
from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .models import SyncOutcome, SyncRejected, SyncSuccess, SyncUnreachable

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"gh[ousr]_[A-Za-z0-9]{20,40}"),  # OAuth / app / refresh tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
    re.compile(r"(?i)bearer\s+[A-Za-z0-9._\-]{8,}"),
]

_REDACTION_PLACEHOLDER = "<redacted>"


class AnnosyncError(RuntimeError):
    """Base class for errors that abort a sync run before any network call."""

    category = "generic"


class ConfigurationError(AnnosyncError):
    category = "config"


class CategoryNotFoundError(AnnosyncError):
    category = "resolution"


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str, extra_secrets: Iterable[str] = ()) -> str:
    """Replace tokens (and any explicitly supplied secrets) with a placeholder."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    for secret in extra_secrets:
        if secret:
            redacted = redacted.replace(secret, _REDACTION_PLACEHOLDER)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    if isinstance(exc, AnnosyncError):
        return ErrorInfo(exc.category, redact(str(exc)), exc.__class__.__name__)
    msg = str(exc) if exc else ""
    low = msg.lower()
    if "timed out" in low or "timeout" in low:
        return ErrorInfo("transport.timeout", redact(msg), exc.__class__.__name__, transient=True)
    if any(k in low for k in ("connection", "name resolution", "temporarily unavailable")):
        return ErrorInfo("transport.network", redact(msg), exc.__class__.__name__, transient=True)
    return ErrorInfo("generic", redact(msg), exc.__class__.__name__)


def classify_outcome(outcome: SyncOutcome) -> ErrorInfo | None:
    """Return the error category of a transport outcome, None for a clean success."""
    if isinstance(outcome, SyncUnreachable):
        category = "transport.timeout" if outcome.timed_out else "transport.network"
        return ErrorInfo(category, redact(outcome.reason), "SyncUnreachable", transient=True)
    if isinstance(outcome, SyncRejected):
        return ErrorInfo(
            "remote.rejected",
            redact(outcome.message),
            "SyncRejected",
            transient=outcome.http_status >= 500,
            details={"status": outcome.http_status},
        )
    if isinstance(outcome, SyncSuccess) and outcome.failed:
        failures = [r for r in outcome.results if not r.succeeded]
        return ErrorInfo(
            "remote.partial",
            f"{outcome.failed} item(s) failed",
            "SyncSuccess",
            details={"statuses": sorted({r.status for r in failures if r.status is not None})},
        )
    return None


__all__ = [
    "AnnosyncError",
    "ConfigurationError",
    "CategoryNotFoundError",
    "ErrorInfo",
    "classify_error",
    "classify_outcome",
    "redact",
]
