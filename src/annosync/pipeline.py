"""Client-side run orchestration: collect, transmit, reconcile.

Local sync records change only from per-item successes the endpoint
confirmed. A timeout, an unreachable endpoint or a rejected batch leaves
every record as it was, so re-running is always safe. Nothing is retried
automatically; a retry is simply the next run.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from .collector import BatchCollector, ProgressCallback, resolve_category, resolve_file_key
from .config import SyncSettings
from .errors import ConfigurationError, classify_outcome
from .logging import get_logger
from .models import IssueRequestItem, Scope, SyncOutcome, SyncSuccess
from .source import AnnotationSource, iter_items
from .sync_state import SyncStateTracker
from .transport import TransportClient, describe_outcome

STATUS_DONE = "done"
STATUS_EMPTY = "empty"
STATUS_ERROR = "error"


@dataclass
class SyncReport:
    status: str
    message: str
    collected: int = 0
    created: int = 0
    failed: int = 0
    confirmed: int = 0
    error_category: str | None = None
    outcome: SyncOutcome | None = None
    synced_items: int = 0
    synced_signatures: int = 0
    confirmed_pairs: list[tuple[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "collected": self.collected,
            "created": self.created,
            "failed": self.failed,
            "confirmed": self.confirmed,
            "error_category": self.error_category,
            "synced_items": self.synced_items,
            "synced_signatures": self.synced_signatures,
        }


def validate_settings(settings: SyncSettings) -> None:
    if not settings.endpoint:
        raise ConfigurationError("Sync endpoint URL is required")
    if not settings.owner or not settings.repo:
        raise ConfigurationError("GitHub owner and repo are required")


def reconcile(
    tracker: SyncStateTracker,
    batch: Sequence[IssueRequestItem],
    outcome: SyncSuccess,
) -> list[tuple[str, str]]:
    """Record every confirmed ``(nodeId, signature)`` pair that was actually sent."""
    sent = {(item.node_id, item.signature) for item in batch}
    confirmed: list[tuple[str, str]] = []
    for result in outcome.results:
        if not result.node_id or not result.signature:
            continue
        pair = (result.node_id, result.signature)
        if pair not in sent or not result.succeeded:
            continue
        tracker.mark_synced(*pair)
        if pair not in confirmed:
            confirmed.append(pair)
    return confirmed


class SyncRunner:
    def __init__(
        self,
        settings: SyncSettings,
        source: AnnotationSource,
        tracker: SyncStateTracker,
        *,
        transport: TransportClient | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.settings = settings
        self.source = source
        self.tracker = tracker
        self.transport = transport or TransportClient(timeout_seconds=settings.timeout_seconds)
        self.progress = progress
        self.logger = get_logger()

    def _report(self, message: str) -> None:
        self.logger.info(message)
        if self.progress is not None:
            self.progress(message)

    def collect(self) -> list[IssueRequestItem]:
        self._report("Checking design file...")
        file_key = resolve_file_key(self.source, self.settings.file_key)
        self._report(f"Resolving '{self.settings.category}' category...")
        category = resolve_category(self.source, self.settings.category)
        collector = BatchCollector(
            self.source,
            self.tracker,
            file_key=file_key,
            label=self.settings.label,
            progress=self.progress,
        )
        return collector.collect(self.settings.scope, category, self.settings.skip_synced)

    def sync(self) -> SyncReport:
        """Run one sync; raises ConfigurationError / CategoryNotFoundError before any network call."""
        validate_settings(self.settings)
        batch = self.collect()
        if not batch:
            return SyncReport(STATUS_EMPTY, "No annotations to send.")

        self._report(f"Collected {len(batch)} item(s). Sending to endpoint...")
        outcome = self.transport.send(
            self.settings.endpoint,
            self.settings.secret or None,
            batch,
            owner=self.settings.owner,
            repo=self.settings.repo,
            project=self.settings.project if self.settings.project.configured else None,
        )
        info = classify_outcome(outcome)
        if not isinstance(outcome, SyncSuccess):
            message = describe_outcome(outcome)
            self.logger.log_error(
                "sync batch unconfirmed", error=message, category=info.category if info else None
            )
            return SyncReport(
                STATUS_ERROR,
                message,
                collected=len(batch),
                error_category=info.category if info else None,
                outcome=outcome,
            )

        confirmed = reconcile(self.tracker, batch, outcome)
        for result in outcome.results:
            if result.project_status is not None and result.project_status.error:
                self.logger.warning(
                    "issue created but not added to project",
                    node_id=result.node_id,
                    project_error=result.project_status.error,
                )
        report = SyncReport(
            STATUS_DONE,
            f"Done: {len(confirmed)} created, {outcome.failed} failed",
            collected=len(batch),
            created=outcome.created,
            failed=outcome.failed,
            confirmed=len(confirmed),
            error_category=info.category if info else None,
            outcome=outcome,
            confirmed_pairs=confirmed,
        )
        self.logger.log_operation(
            "sync_complete",
            collected=report.collected,
            confirmed=report.confirmed,
            failed_count=report.failed,
        )
        return report

    def _item_ids(self) -> list[str]:
        """Item ids in scope; with all pages this includes orphan records.

        An orphan is a stored record whose item no longer exists on any page.
        It has no page, so only the all-pages scope reaches it.
        """
        if not self.settings.scan_all_pages:
            return [item.id for item in iter_items(self.source, Scope.CURRENT)]
        self._report("Loading all pages...")
        self.source.load_all()
        ids = [item.id for item in iter_items(self.source, Scope.ALL)]
        known = set(ids)
        ids.extend(item_id for item_id in self.tracker.recorded_item_ids() if item_id not in known)
        return ids

    def view_synced(self) -> SyncReport:
        summary = self.tracker.summarize(self._item_ids())
        return SyncReport(
            STATUS_DONE,
            f"Sync records: {summary.items} item(s), {summary.signatures} signature(s)",
            synced_items=summary.items,
            synced_signatures=summary.signatures,
        )

    def reset_synced(self) -> SyncReport:
        cleared = sum(1 for item_id in self._item_ids() if self.tracker.reset(item_id))
        self.logger.log_operation("reset_synced", cleared=cleared)
        return SyncReport(STATUS_DONE, f"Reset done: cleared sync records on {cleared} item(s)")


__all__ = [
    "STATUS_DONE",
    "STATUS_EMPTY",
    "STATUS_ERROR",
    "SyncReport",
    "SyncRunner",
    "reconcile",
    "validate_settings",
]
