"""Server side of the sync protocol.

``RemoteSyncService.sync_batch`` turns one batch into GitHub issues. It keeps
no memory between calls: the client decides what to send (via signatures)
and correlates results back by the ``nodeId``/``signature`` it supplied.

Items are processed one at a time, in order, and one item's failure never
stops the rest. Attaching a created issue to a project board is a separate,
best-effort outcome reported as ``projectStatus``; it never turns a created
issue into a failure.

``dispatch`` is the framework-free HTTP layer (method, auth, credential and
payload checks) wrapped by the Flask app in :mod:`annosync.server`.
"""

from __future__ import annotations

import hmac
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import requests

from .config import ServiceConfig
from .github_rest import GitHubAPIError, GitHubRestClient
from .logging import get_logger
from .models import IssueResultItem, ProjectBoard, ProjectReference
from .projects import ProjectBoardResolver, project_reference_from_payload
from .schemas import request_validator
from .transport import SECRET_HEADER

MISSING_FIELDS_ERROR = "Missing title or body"


@dataclass
class SyncRequest:
    owner: str
    repo: str
    issues: list[Any]
    project: ProjectReference = field(default_factory=ProjectReference)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> SyncRequest:
        return cls(
            owner=str(payload["owner"]),
            repo=str(payload["repo"]),
            issues=list(payload["issues"]),
            project=project_reference_from_payload(payload),
        )


@dataclass
class SyncResponse:
    created: int = 0
    failed: int = 0
    results: list[IssueResultItem] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "created": self.created,
            "failed": self.failed,
            "results": [r.to_payload() for r in self.results],
        }


@dataclass
class HttpResponse:
    status: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


class RemoteSyncService:
    def __init__(
        self,
        client: GitHubRestClient,
        resolver: ProjectBoardResolver | None = None,
    ) -> None:
        self.client = client
        self.resolver = resolver or ProjectBoardResolver(client)
        self.logger = get_logger()

    def _resolve_board(self, request: SyncRequest) -> ProjectBoard | None:
        if not request.project.configured:
            return None
        return self.resolver.resolve_reference(request.project, request.owner)

    def _process_item(
        self, request: SyncRequest, raw: Any, board: ProjectBoard | None
    ) -> IssueResultItem:
        issue = raw if isinstance(raw, Mapping) else {}
        node_id = _optional_str(issue.get("nodeId"))
        signature = _optional_str(issue.get("signature"))
        title = issue.get("title")
        body = issue.get("body")
        if not title or not body:
            return IssueResultItem(node_id, signature, 400, error=MISSING_FIELDS_ERROR)
        labels = issue.get("labels")
        labels = [str(label) for label in labels] if isinstance(labels, list) else []

        try:
            created = self.client.create_issue(
                owner=request.owner,
                repo=request.repo,
                title=str(title),
                body=str(body),
                labels=labels,
            )
        except GitHubAPIError as exc:
            return IssueResultItem(node_id, signature, exc.status or 500, error=str(exc))
        except requests.RequestException as exc:
            return IssueResultItem(node_id, signature, 500, error=str(exc) or "Unknown error")

        result = IssueResultItem(node_id, signature, created.status, url=created.url)
        if board is not None:
            result.project_status = self.resolver.attach(board, created.node_id)
        return result

    def sync_batch(self, request: SyncRequest) -> SyncResponse:
        board = self._resolve_board(request)
        response = SyncResponse()
        with self.logger.timed_operation(
            "sync_batch", repo=f"{request.owner}/{request.repo}", batch_size=len(request.issues)
        ):
            for raw in request.issues:
                result = self._process_item(request, raw, board)
                if result.succeeded:
                    response.created += 1
                    action = "created"
                else:
                    response.failed += 1
                    action = "failed"
                self.logger.log_issue_action(
                    action, result.node_id, result.signature, result.status, url=result.url
                )
                response.results.append(result)
        return response


def _header(headers: Mapping[str, str], name: str) -> str | None:
    for key, value in headers.items():
        if key.lower() == name.lower():
            return value
    return None


def dispatch(
    method: str,
    headers: Mapping[str, str],
    body: bytes | str | None,
    config: ServiceConfig,
    *,
    session: requests.Session | None = None,
) -> HttpResponse:
    """Validate one HTTP request and run the batch it carries."""
    if method.upper() != "POST":
        return HttpResponse(405, {"error": "Method Not Allowed"}, {"Allow": "POST"})

    if config.secret:
        provided = _header(headers, SECRET_HEADER)
        if not provided or not hmac.compare_digest(provided.encode(), config.secret.encode()):
            return HttpResponse(401, {"error": "Unauthorized"})

    if not config.token:
        return HttpResponse(500, {"error": "Missing GITHUB_TOKEN"})

    try:
        payload = json.loads(body or b"null")
    except (ValueError, UnicodeDecodeError):
        return HttpResponse(400, {"error": "Invalid JSON payload"})

    if not isinstance(payload, Mapping) or not request_validator().is_valid(payload):
        return HttpResponse(400, {"error": "Invalid payload: owner, repo, issues required"})

    # a caller-supplied session stays open; one made here is closed here
    http = session or requests.Session()
    try:
        client = GitHubRestClient(
            token=config.token,
            base_url=config.api_url,
            graphql_url=config.graphql_url,
            session=http,
        )
        service = RemoteSyncService(client)
        response = service.sync_batch(SyncRequest.from_payload(payload))
    finally:
        if session is None:
            http.close()
    return HttpResponse(200, response.to_payload())


__all__ = [
    "HttpResponse",
    "RemoteSyncService",
    "SyncRequest",
    "SyncResponse",
    "dispatch",
]
