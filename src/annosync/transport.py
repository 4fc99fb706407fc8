"""Deliver one batch to the sync endpoint under a wall-clock bound.

``send`` always yields exactly one :data:`SyncOutcome`:

- ``SyncSuccess``     2xx with a JSON object body
- ``SyncRejected``    the endpoint answered, but not with a usable 2xx
- ``SyncUnreachable`` no answer: ``"timeout"`` when the bound elapsed,
                      ``"connection error: ..."`` otherwise

The request runs on a worker thread so the caller waits at most
``timeout_seconds`` even if the socket stalls between reads.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any

import requests

from .logging import get_logger
from .models import (
    IssueRequestItem,
    IssueResultItem,
    ProjectReference,
    SyncOutcome,
    SyncRejected,
    SyncSuccess,
    SyncUnreachable,
)

SECRET_HEADER = "X-QA-Secret"
DEFAULT_TIMEOUT_SECONDS = 20.0
TIMEOUT_REASON = "timeout"

TIMEOUT_MESSAGE = "The request timed out. Check the network and the endpoint URL."


def build_request_payload(
    batch: Sequence[IssueRequestItem],
    *,
    owner: str,
    repo: str,
    project: ProjectReference | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "owner": owner,
        "repo": repo,
        "issues": [item.to_payload() for item in batch],
    }
    if project is not None:
        payload.update(project.to_payload())
    return payload


def parse_success_payload(data: Mapping[str, Any]) -> SyncSuccess:
    raw_results = data.get("results")
    results = [
        IssueResultItem.from_payload(entry)
        for entry in (raw_results if isinstance(raw_results, list) else [])
        if isinstance(entry, Mapping)
    ]
    created = data.get("created")
    failed = data.get("failed")
    return SyncSuccess(
        created=created if isinstance(created, int) else 0,
        failed=failed if isinstance(failed, int) else 0,
        results=results,
    )


def describe_outcome(outcome: SyncOutcome) -> str:
    if isinstance(outcome, SyncUnreachable):
        if outcome.timed_out:
            return TIMEOUT_MESSAGE
        return f"Request failed: {outcome.reason}"
    if isinstance(outcome, SyncRejected):
        return f"Server error ({outcome.http_status}): {outcome.message}"
    return f"{outcome.created} created, {outcome.failed} failed"


class TransportClient:
    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.logger = get_logger()

    def _post(self, endpoint: str, headers: dict[str, str], payload: dict[str, Any]) -> requests.Response:
        return self.session.post(endpoint, json=payload, headers=headers, timeout=self.timeout_seconds)

    def _to_outcome(self, response: requests.Response) -> SyncOutcome:
        status = response.status_code
        if not 200 <= status < 300:
            return SyncRejected(status, response.text or response.reason or "")
        try:
            data = response.json()
        except ValueError:
            return SyncRejected(status, "Invalid response payload")
        if not isinstance(data, Mapping):
            return SyncRejected(status, "Invalid response payload")
        return parse_success_payload(data)

    def send(
        self,
        endpoint: str,
        secret: str | None,
        batch: Sequence[IssueRequestItem],
        *,
        owner: str,
        repo: str,
        project: ProjectReference | None = None,
    ) -> SyncOutcome:
        headers = {"Content-Type": "application/json"}
        if secret:
            headers[SECRET_HEADER] = secret
        payload = build_request_payload(batch, owner=owner, repo=repo, project=project)

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="annosync-send")
        try:
            future = executor.submit(self._post, endpoint, headers, payload)
            try:
                response = future.result(timeout=self.timeout_seconds)
            except FutureTimeoutError:
                future.cancel()
                outcome: SyncOutcome = SyncUnreachable(TIMEOUT_REASON)
            except requests.Timeout:
                outcome = SyncUnreachable(TIMEOUT_REASON)
            except requests.RequestException as exc:
                outcome = SyncUnreachable(f"connection error: {exc}")
            else:
                outcome = self._to_outcome(response)
        finally:
            # never join a stalled worker; the socket timeout ends it eventually
            executor.shutdown(wait=False)

        self.logger.log_operation(
            "transport_send",
            endpoint=endpoint,
            batch_size=len(batch),
            outcome=type(outcome).__name__,
        )
        return outcome


__all__ = [
    "SECRET_HEADER",
    "TIMEOUT_MESSAGE",
    "TransportClient",
    "build_request_payload",
    "describe_outcome",
    "parse_success_payload",
]
