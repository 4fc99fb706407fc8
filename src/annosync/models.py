from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Scope(str, Enum):
    """Which part of the source a run walks."""

    CURRENT = "current"
    ALL = "all"


@dataclass(frozen=True)
class Annotation:
    category_id: str | None
    label_markdown: str | None = None
    label: str | None = None
    properties: tuple[str, ...] = ()

    @property
    def text(self) -> str:
        return self.label_markdown or self.label or ""


@dataclass(frozen=True)
class AncestorRef:
    id: str
    name: str
    node_type: str
    component_name: str | None = None


@dataclass
class AnnotatedItem:
    """A node of the design document together with its annotations.

    ``ancestors`` is ordered parent first, ending at the page (or document).
    ``component_name`` is the resolved main component (or component set) name
    when the item itself is an instance.
    """

    id: str
    name: str
    node_type: str
    annotations: Sequence[Annotation] = ()
    fields: Mapping[str, Any] = field(default_factory=dict)
    ancestors: Sequence[AncestorRef] = ()
    component_name: str | None = None
    instance_properties: Mapping[str, Any] = field(default_factory=dict)

    @property
    def parent(self) -> AncestorRef | None:
        return self.ancestors[0] if self.ancestors else None


@dataclass(frozen=True)
class AnnotationCategory:
    id: str
    label: str


@dataclass
class IssueRequestItem:
    title: str
    body: str
    labels: list[str]
    node_id: str
    signature: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "labels": list(self.labels),
            "nodeId": self.node_id,
            "signature": self.signature,
        }


@dataclass
class ProjectStatus:
    status: int
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"status": self.status}
        if self.error:
            payload["error"] = self.error
        return payload

    @classmethod
    def from_payload(cls, raw: Any) -> ProjectStatus | None:
        if not isinstance(raw, Mapping):
            return None
        status = raw.get("status")
        if not isinstance(status, int):
            return None
        error = raw.get("error")
        return cls(status=status, error=error if isinstance(error, str) else None)


@dataclass
class IssueResultItem:
    node_id: str | None
    signature: str | None
    status: int | None
    url: str | None = None
    error: str | None = None
    project_status: ProjectStatus | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is not None and 200 <= self.status < 300

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "nodeId": self.node_id,
            "signature": self.signature,
            "status": self.status,
        }
        if self.url:
            payload["url"] = self.url
        if self.error:
            payload["error"] = self.error
        if self.project_status is not None:
            payload["projectStatus"] = self.project_status.to_payload()
        return payload

    @classmethod
    def from_payload(cls, raw: Mapping[str, Any]) -> IssueResultItem:
        def _str(key: str) -> str | None:
            value = raw.get(key)
            return value if isinstance(value, str) else None

        status = raw.get("status")
        return cls(
            node_id=_str("nodeId"),
            signature=_str("signature"),
            status=status if isinstance(status, int) and not isinstance(status, bool) else None,
            url=_str("url"),
            error=_str("error"),
            project_status=ProjectStatus.from_payload(raw.get("projectStatus")),
        )


@dataclass(frozen=True)
class ProjectBoard:
    id: str
    scope: str  # organization | user
    owner: str
    name: str | None = None
    number: int | None = None


@dataclass(frozen=True)
class ProjectReference:
    """Project attachment settings carried in a sync request."""

    name: str | None = None
    owner: str | None = None
    number: int | None = None

    @property
    def configured(self) -> bool:
        return bool(self.name) or self.number is not None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.name:
            payload["projectName"] = self.name
        if self.owner:
            payload["projectOwner"] = self.owner
        if self.number is not None:
            payload["projectNumber"] = self.number
        return payload


# ---- transport outcomes ----------------------------------------------------


@dataclass
class SyncSuccess:
    created: int
    failed: int
    results: list[IssueResultItem]


@dataclass
class SyncRejected:
    http_status: int
    message: str


@dataclass
class SyncUnreachable:
    reason: str

    @property
    def timed_out(self) -> bool:
        return self.reason == "timeout"


SyncOutcome = SyncSuccess | SyncRejected | SyncUnreachable


__all__ = [
    "Scope",
    "Annotation",
    "AncestorRef",
    "AnnotatedItem",
    "AnnotationCategory",
    "IssueRequestItem",
    "IssueResultItem",
    "ProjectStatus",
    "ProjectBoard",
    "ProjectReference",
    "SyncSuccess",
    "SyncRejected",
    "SyncUnreachable",
    "SyncOutcome",
]
