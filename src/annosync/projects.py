"""GitHub Projects (v2) board lookup and issue attachment.

Resolution is best effort: every failure (unknown owner, wrong owner type,
network error, GraphQL error) degrades to "no board", because creating the
issue is the primary effect and attaching it is a bonus. Boards are resolved
once per sync call and never cached across calls.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import requests

from .github_rest import GitHubAPIError, GitHubRestClient
from .logging import get_logger
from .models import ProjectBoard, ProjectReference, ProjectStatus

OWNER_SCOPES = ("organization", "user")
PROJECT_LIST_LIMIT = 50
GRAPHQL_ERROR_STATUS = 422
INTERNAL_ERROR_STATUS = 500

_PROJECT_BY_NUMBER = """
query($owner: String!, $number: Int!) {{
  {scope}(login: $owner) {{
    projectV2(number: $number) {{
      id
      title
      number
    }}
  }}
}}
"""

_PROJECTS_LIST = """
query($owner: String!, $first: Int!) {{
  {scope}(login: $owner) {{
    projectsV2(first: $first) {{
      nodes {{
        id
        title
        number
      }}
    }}
  }}
}}
"""

_ADD_ITEM = """
mutation($projectId: ID!, $contentId: ID!) {
  addProjectV2ItemById(input: {projectId: $projectId, contentId: $contentId}) {
    item {
      id
    }
  }
}
"""


def parse_project_number(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
        return number if number > 0 else None
    return None


def project_reference_from_payload(payload: Mapping[str, Any]) -> ProjectReference:
    name = payload.get("projectName")
    owner = payload.get("projectOwner")
    return ProjectReference(
        name=name.strip() if isinstance(name, str) and name.strip() else None,
        owner=owner.strip() if isinstance(owner, str) and owner.strip() else None,
        number=parse_project_number(payload.get("projectNumber")),
    )


class ProjectBoardResolver:
    def __init__(self, client: GitHubRestClient) -> None:
        self.client = client
        self.logger = get_logger()

    def _query(self, query: str, variables: dict[str, Any], scope: str) -> Mapping[str, Any] | None:
        try:
            data = self.client.graphql(query, variables)
        except (GitHubAPIError, requests.RequestException) as exc:
            self.logger.debug(
                "project lookup failed", scope=scope, owner=variables.get("owner"), error=str(exc)
            )
            return None
        owner_payload = data.get(scope)
        return owner_payload if isinstance(owner_payload, Mapping) else None

    def _by_number(self, owner: str, number: int) -> ProjectBoard | None:
        for scope in OWNER_SCOPES:
            owner_payload = self._query(
                _PROJECT_BY_NUMBER.format(scope=scope), {"owner": owner, "number": number}, scope
            )
            project = owner_payload.get("projectV2") if owner_payload else None
            if isinstance(project, Mapping) and isinstance(project.get("id"), str):
                return ProjectBoard(id=project["id"], scope=scope, owner=owner, number=number)
        return None

    def _by_name(self, owner: str, name: str) -> ProjectBoard | None:
        for scope in OWNER_SCOPES:
            owner_payload = self._query(
                _PROJECTS_LIST.format(scope=scope),
                {"owner": owner, "first": PROJECT_LIST_LIMIT},
                scope,
            )
            projects = owner_payload.get("projectsV2") if owner_payload else None
            nodes = projects.get("nodes") if isinstance(projects, Mapping) else None
            if not isinstance(nodes, list):
                continue
            for node in nodes:
                if not isinstance(node, Mapping):
                    continue
                if node.get("title") == name and isinstance(node.get("id"), str):
                    return ProjectBoard(id=node["id"], scope=scope, owner=owner, name=name)
        return None

    def resolve(self, owner: str, reference: str | int | None) -> ProjectBoard | None:
        """Map a project number (int) or exact title (str) to the board's node id.

        A string is always a title, even when it is made of digits.
        """
        if not owner or reference is None or reference == "":
            return None
        if isinstance(reference, str):
            board = self._by_name(owner, reference)
        else:
            number = parse_project_number(reference)
            board = self._by_number(owner, number) if number is not None else None
        if board is None:
            self.logger.warning("project board not found", owner=owner, reference=str(reference))
        else:
            self.logger.debug("project board resolved", owner=owner, project_id=board.id, scope=board.scope)
        return board

    def resolve_reference(self, reference: ProjectReference, default_owner: str) -> ProjectBoard | None:
        if not reference.configured:
            return None
        owner = reference.owner or default_owner
        if reference.number is not None:
            return self.resolve(owner, reference.number)
        return self.resolve(owner, reference.name)

    def attach(self, board: ProjectBoard, content_id: str | None) -> ProjectStatus:
        if not content_id:
            return ProjectStatus(INTERNAL_ERROR_STATUS, "Missing issue node id")
        try:
            data = self.client.graphql(_ADD_ITEM, {"projectId": board.id, "contentId": content_id})
        except GitHubAPIError as exc:
            status = exc.status if exc.status and exc.status >= 400 else GRAPHQL_ERROR_STATUS
            return ProjectStatus(status, str(exc))
        except requests.RequestException as exc:
            return ProjectStatus(INTERNAL_ERROR_STATUS, str(exc) or exc.__class__.__name__)
        added = data.get("addProjectV2ItemById")
        item = added.get("item") if isinstance(added, Mapping) else None
        if not isinstance(item, Mapping) or not item.get("id"):
            return ProjectStatus(GRAPHQL_ERROR_STATUS, "Project item was not created")
        return ProjectStatus(200)


__all__ = [
    "ProjectBoardResolver",
    "parse_project_number",
    "project_reference_from_payload",
]
