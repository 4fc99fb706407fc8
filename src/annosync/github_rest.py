from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import requests

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
API_VERSION = "2022-11-28"
USER_AGENT = "annosync-rest/0.2.0"
HTTP_ERROR_STATUS = 400
REQUEST_TIMEOUT = 30


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub REST/GraphQL API returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


@dataclass
class CreatedIssue:
    status: int
    number: int | None
    url: str | None
    node_id: str | None


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return response.reason or f"HTTP {response.status_code}"


@dataclass
class GitHubRestClient:
    """Lightweight REST/GraphQL client for the calls the sync endpoint makes."""

    token: str
    base_url: str = DEFAULT_API_URL
    graphql_url: str = DEFAULT_GRAPHQL_URL
    session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("X-GitHub-Api-Version", API_VERSION)
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any | None = None,
    ) -> requests.Response:
        url = (
            path
            if path.startswith("http")
            else f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        )
        response = self._session.request(
            method,
            url,
            json=json_body,
            headers=self._session.headers,
            timeout=REQUEST_TIMEOUT,
        )
        if response.status_code >= HTTP_ERROR_STATUS:
            raise GitHubAPIError(
                _error_message(response),
                status=response.status_code,
                response_text=response.text,
            )
        return response

    # ---- Issue operations --------------------------------------------
    def create_issue(
        self,
        *,
        owner: str,
        repo: str,
        title: str,
        body: str,
        labels: Iterable[str] | None = None,
    ) -> CreatedIssue:
        payload: dict[str, Any] = {"title": title, "body": body, "labels": list(labels or [])}
        response = self._request("POST", f"/repos/{owner}/{repo}/issues", json_body=payload)
        try:
            data = response.json() if response.text else {}
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        number = data.get("number")
        url = data.get("html_url")
        node_id = data.get("node_id")
        return CreatedIssue(
            status=response.status_code,
            number=number if isinstance(number, int) else None,
            url=url if isinstance(url, str) else None,
            node_id=node_id if isinstance(node_id, str) else None,
        )

    # ---- GraphQL ------------------------------------------------------
    def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        payload = {"query": query, "variables": variables or {}}
        response = self._request("POST", self.graphql_url, json_body=payload)
        try:
            data = response.json()
        except ValueError as exc:
            raise GitHubAPIError(
                "GraphQL response was not JSON", status=response.status_code
            ) from exc
        if not isinstance(data, dict):
            raise GitHubAPIError("GraphQL response was not an object", status=response.status_code)
        if data.get("errors"):
            raise GitHubAPIError(
                f"GraphQL query failed: {data['errors']}", status=response.status_code
            )
        result = data.get("data")
        return result if isinstance(result, dict) else {}


__all__ = ["CreatedIssue", "GitHubAPIError", "GitHubRestClient"]
