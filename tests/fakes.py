"""Hand-rolled doubles shared by the test modules."""

from __future__ import annotations

import copy
import json
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from annosync.models import IssueRequestItem, IssueResultItem, SyncOutcome, SyncSuccess

FILE_KEY = "FILEKEY123"

_PAGE_ONE_ANCESTORS = [
    {"id": "1:1", "name": "Checkout", "type": "FRAME"},
    {"id": "0:1", "name": "Page 1", "type": "PAGE"},
]

SNAPSHOT: dict[str, Any] = {
    "fileKey": FILE_KEY,
    "name": "Checkout flows",
    "currentPage": "0:1",
    "categories": [
        {"id": "cat-dev", "label": "Dev"},
        {"id": "cat-qa", "label": "QA"},
    ],
    "pages": [
        {
            "id": "0:1",
            "name": "Page 1",
            "items": [
                {
                    "id": "1:2",
                    "name": "Primary",
                    "type": "INSTANCE",
                    "componentName": "Button",
                    "fields": {
                        "paddingTop": 8,
                        "paddingRight": 16,
                        "paddingBottom": 8,
                        "paddingLeft": 16,
                    },
                    "instanceProperties": {
                        "Size#12:0": {"value": "Large"},
                        "Disabled#3:1": {"value": False},
                    },
                    "ancestors": _PAGE_ONE_ANCESTORS,
                    "annotations": [
                        {
                            "categoryId": "cat-qa",
                            "labelMarkdown": "Padding is off",
                            "properties": [{"type": "padding"}],
                        },
                        {"categoryId": "cat-dev", "labelMarkdown": "Dev note"},
                    ],
                },
                {
                    "id": "1:3",
                    "name": "Title",
                    "type": "TEXT",
                    "fields": {"fontName": {"family": "Inter", "style": "Bold"}},
                    "ancestors": _PAGE_ONE_ANCESTORS,
                    "annotations": [
                        {
                            "categoryId": "cat-qa",
                            "labelMarkdown": "Wrong weight",
                            "properties": [{"type": "fontStyle"}, {"type": "unknownKind"}],
                        }
                    ],
                },
                {
                    "id": "1:4",
                    "name": "Icon",
                    "type": "VECTOR",
                    "ancestors": _PAGE_ONE_ANCESTORS,
                    "annotations": [{"categoryId": "cat-qa"}],
                },
            ],
        },
        {
            "id": "0:2",
            "name": "Page 2",
            "items": [
                {
                    "id": "2:1",
                    "name": "Card",
                    "type": "FRAME",
                    "ancestors": [{"id": "0:2", "name": "Page 2", "type": "PAGE"}],
                    "annotations": [{"categoryId": "cat-qa", "label": "Shadow missing"}],
                }
            ],
        },
    ],
}


def snapshot() -> dict[str, Any]:
    return copy.deepcopy(SNAPSHOT)


@dataclass
class DummyResponse:
    status_code: int
    payload: Any
    reason: str = "OK"

    def json(self) -> Any:
        if isinstance(self.payload, Exception):
            raise self.payload
        if isinstance(self.payload, str):
            return json.loads(self.payload)
        return self.payload

    @property
    def text(self) -> str:
        payload = self.payload
        if isinstance(payload, dict | list):
            return json.dumps(payload)
        if isinstance(payload, Exception):
            return ""
        return str(payload)


class DummySession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses: Sequence[DummyResponse | Exception] = ()):
        self._responses = list(responses)
        self.request_log: list[tuple[str, str, dict[str, Any]]] = []
        self.headers: dict[str, str] = {}
        self.closed = False

    def _next(self) -> DummyResponse:
        if not self._responses:
            raise AssertionError("No response queued for request")
        nxt = self._responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        json: Any | None = None,
        timeout: float | None = None,
    ) -> DummyResponse:
        self.request_log.append((method, url, {"headers": headers, "json": json, "timeout": timeout}))
        return self._next()

    def post(
        self,
        url: str,
        *,
        json: Any | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> DummyResponse:
        return self.request("POST", url, headers=headers, json=json, timeout=timeout)

    def close(self) -> None:
        self.closed = True


class SlowSession(DummySession):
    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay

    def post(self, url: str, **kwargs: Any) -> DummyResponse:
        time.sleep(self.delay)
        return DummyResponse(200, {"created": 0, "failed": 0, "results": []})


class FlaskBridgeSession:
    """Routes transport POSTs into a Flask test client."""

    def __init__(self, app: Any):
        self.client = app.test_client()
        self.calls = 0

    def post(
        self,
        url: str,
        *,
        json: Any | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> DummyResponse:
        self.calls += 1
        path = "/" + url.split("://", 1)[-1].split("/", 1)[-1]
        forwarded = {k: v for k, v in (headers or {}).items() if k.lower() != "content-type"}
        resp = self.client.post(path, json=json, headers=forwarded)
        return DummyResponse(resp.status_code, resp.get_data(as_text=True), reason=resp.status)


def issue_created(number: int, node_id: str | None = None) -> DummyResponse:
    return DummyResponse(
        201,
        {
            "number": number,
            "html_url": f"https://github.com/acme/widgets/issues/{number}",
            "node_id": node_id or f"I_{number}",
        },
        reason="Created",
    )


class FakeTransport:
    """Stands in for TransportClient; answers each batch through ``responder``."""

    def __init__(self, responder: Callable[[list[IssueRequestItem]], SyncOutcome] | None = None):
        self.responder = responder or echo_success()
        self.batches: list[list[IssueRequestItem]] = []
        self.calls: list[dict[str, Any]] = []

    def send(
        self,
        endpoint: str,
        secret: str | None,
        batch: Sequence[IssueRequestItem],
        *,
        owner: str,
        repo: str,
        project: Any = None,
    ) -> SyncOutcome:
        items = list(batch)
        self.batches.append(items)
        self.calls.append(
            {"endpoint": endpoint, "secret": secret, "owner": owner, "repo": repo, "project": project}
        )
        return self.responder(items)


def echo_success(failing: set[str] | None = None) -> Callable[[list[IssueRequestItem]], SyncOutcome]:
    """Build a responder that creates every item except node ids in ``failing``."""
    failing = failing or set()

    def respond(batch: list[IssueRequestItem]) -> SyncOutcome:
        results = []
        for index, item in enumerate(batch, start=1):
            if item.node_id in failing:
                results.append(IssueResultItem(item.node_id, item.signature, 500, error="boom"))
            else:
                results.append(
                    IssueResultItem(
                        item.node_id,
                        item.signature,
                        201,
                        url=f"https://github.com/acme/widgets/issues/{index}",
                    )
                )
        created = sum(1 for r in results if r.succeeded)
        return SyncSuccess(created=created, failed=len(results) - created, results=results)

    return respond
