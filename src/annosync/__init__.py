"""annosync - sync design QA annotations to GitHub issues.

High-level public API:

from annosync import SyncRunner, load_config

settings = load_config('annosync.config.yaml')
runner = SyncRunner(settings, source, tracker)
report = runner.sync()
print(report.message)

``source`` is any :class:`AnnotationSource` (``JsonDocumentSource`` reads a
design snapshot exported to JSON) and ``tracker`` wraps a key/value store
holding which annotation signatures were already turned into issues.

The sync endpoint itself is a Flask app built by
:func:`annosync.server.create_app`.
"""

from __future__ import annotations

from .config import ServiceConfig, SyncSettings, load_config
from .models import (
    AnnotatedItem,
    Annotation,
    IssueRequestItem,
    IssueResultItem,
    Scope,
    SyncOutcome,
    SyncRejected,
    SyncSuccess,
    SyncUnreachable,
)
from .pipeline import SyncReport, SyncRunner
from .signature import compute_signature
from .source import AnnotationSource, JsonDocumentSource, JsonFileKeyValueStore
from .sync_state import SyncStateTracker

__version__ = "0.2.0"

__all__ = [
    "AnnotatedItem",
    "Annotation",
    "AnnotationSource",
    "IssueRequestItem",
    "IssueResultItem",
    "JsonDocumentSource",
    "JsonFileKeyValueStore",
    "Scope",
    "ServiceConfig",
    "SyncOutcome",
    "SyncRejected",
    "SyncReport",
    "SyncRunner",
    "SyncSettings",
    "SyncStateTracker",
    "SyncSuccess",
    "SyncUnreachable",
    "__version__",
    "compute_signature",
    "load_config",
]
