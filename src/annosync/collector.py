"""Build the batch of issue requests for one sync run.

The collector is read-only over the source and the sync records: it decides
what *would* be sent, and nothing is written until the endpoint confirms
individual items (see :mod:`annosync.pipeline`).
"""

from __future__ import annotations

import re
from collections.abc import Callable
from urllib.parse import quote

from .errors import CategoryNotFoundError, ConfigurationError
from .logging import get_logger
from .models import AnnotatedItem, Annotation, AnnotationCategory, IssueRequestItem, Scope
from .properties import annotation_properties, component_properties
from .signature import compute_signature
from .source import AnnotationSource
from .sync_state import SyncStateTracker

DESIGN_LINK_TEMPLATE = "https://www.figma.com/file/{file_key}/{name}?node-id={node_id}"
EMPTY_TEXT_PLACEHOLDER = "(No annotation text)"
EMPTY_LIST_PLACEHOLDER = "- None"
DEFAULT_LABEL = "QA"

_FILE_KEY_RE = re.compile(r"figma\.com/(?:file|design)/([^/?]+)", re.IGNORECASE)
_STOP_TYPES = {"PAGE", "DOCUMENT"}
_COMPONENT_TYPES = {"COMPONENT_SET", "COMPONENT"}
# characters encodeURIComponent leaves alone
_URI_SAFE = "!~*'()"

ProgressCallback = Callable[[str], None]


def extract_file_key(value: str | None) -> str | None:
    """Accept a bare file key or a design URL and return the key."""
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    match = _FILE_KEY_RE.search(trimmed)
    if match:
        return match.group(1)
    return trimmed


def resolve_file_key(source: AnnotationSource, configured: str | None) -> str:
    key = source.file_key or extract_file_key(configured)
    if not key:
        raise ConfigurationError(
            "Design file key not found; set sync.file_key to the file URL or key"
        )
    return key


def resolve_category(source: AnnotationSource, name: str) -> AnnotationCategory:
    wanted = name.strip().casefold()
    for category in source.categories():
        if category.label.strip().casefold() == wanted:
            return category
    raise CategoryNotFoundError(
        f"Annotation category '{name}' not found; create it in the design tool first"
    )


def build_design_link(file_key: str, document_name: str, node_id: str) -> str:
    return DESIGN_LINK_TEMPLATE.format(
        file_key=file_key,
        name=quote(document_name, safe=_URI_SAFE),
        node_id=quote(node_id, safe=_URI_SAFE),
    )


def component_name_for(item: AnnotatedItem) -> str:
    if item.node_type == "INSTANCE" and item.component_name:
        return item.component_name
    if item.node_type in _COMPONENT_TYPES:
        return item.name
    for ancestor in item.ancestors:
        if ancestor.node_type in _STOP_TYPES:
            break
        if ancestor.node_type == "INSTANCE" and ancestor.component_name:
            return ancestor.component_name
        if ancestor.node_type in _COMPONENT_TYPES:
            return ancestor.name
    return item.name


def screen_name_for(item: AnnotatedItem) -> str:
    """Name of the top-level frame holding ``item``.

    That is the nearest frame (the item included) whose parent is a page or a
    section; falls back to the direct parent name, then the item name.
    """
    chain: list[tuple[str, str]] = [(item.node_type, item.name)]
    chain.extend((a.node_type, a.name) for a in item.ancestors)
    for index, (node_type, name) in enumerate(chain):
        if node_type in _STOP_TYPES:
            break
        parent_type = chain[index + 1][0] if index + 1 < len(chain) else None
        if node_type == "FRAME" and parent_type in {"PAGE", "SECTION"}:
            return name
    parent = item.parent
    return parent.name if parent is not None else item.name


def _labeled_lines(entries: list[tuple[str, str]]) -> list[str]:
    if not entries:
        return [EMPTY_LIST_PLACEHOLDER]
    return [f"- **{name}**: {value}" for name, value in entries]


def build_issue_body(
    *,
    item: AnnotatedItem,
    annotation: Annotation,
    annotation_text: str,
    screen_name: str,
    design_link: str,
    component_name: str,
) -> str:
    annotation_lines = _labeled_lines(
        annotation_properties(item, annotation.properties, component_name)
    )
    component_lines = _labeled_lines(component_properties(item))
    return "\n".join(
        [
            "# Design QA",
            "",
            "## Location",
            f"- **Screen**: {screen_name}",
            f"- **Design link**: {design_link}",
            "",
            "## Description",
            annotation_text,
            "",
            "## Details",
            "### Annotation properties",
            *annotation_lines,
            "",
            "### Component properties",
            *component_lines,
        ]
    )


class BatchCollector:
    def __init__(
        self,
        source: AnnotationSource,
        tracker: SyncStateTracker,
        *,
        file_key: str,
        label: str = DEFAULT_LABEL,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.source = source
        self.tracker = tracker
        self.file_key = file_key
        self.label = label or DEFAULT_LABEL
        self.progress = progress
        self.logger = get_logger()

    def _report(self, message: str) -> None:
        self.logger.debug(message)
        if self.progress is not None:
            self.progress(message)

    def build_request(self, item: AnnotatedItem, annotation: Annotation, signature: str) -> IssueRequestItem:
        component = component_name_for(item)
        screen = screen_name_for(item)
        body = build_issue_body(
            item=item,
            annotation=annotation,
            annotation_text=annotation.text or EMPTY_TEXT_PLACEHOLDER,
            screen_name=screen,
            design_link=build_design_link(self.file_key, self.source.document_name, item.id),
            component_name=component,
        )
        return IssueRequestItem(
            title=f"[{self.label}] Fix {component} in {screen}",
            body=body,
            labels=[self.label],
            node_id=item.id,
            signature=signature,
        )

    def collect(
        self, scope: Scope, category: AnnotationCategory, skip_already_synced: bool = True
    ) -> list[IssueRequestItem]:
        if scope is Scope.ALL:
            self._report("Loading all pages...")
            self.source.load_all()
        pages = self.source.pages(scope)
        batch: list[IssueRequestItem] = []
        skipped = 0
        for index, page in enumerate(pages, start=1):
            self._report(f"Scanning annotations... ({index}/{len(pages)})")
            for item in page.items:
                for annotation in item.annotations:
                    if annotation.category_id != category.id:
                        continue
                    signature = compute_signature(item.id, annotation.category_id, annotation.text)
                    if skip_already_synced and self.tracker.is_synced(item.id, signature):
                        skipped += 1
                        continue
                    batch.append(self.build_request(item, annotation, signature))
        self.logger.log_operation(
            "collect", scope=scope.value, batch_size=len(batch), skipped=skipped, pages=len(pages)
        )
        return batch


__all__ = [
    "BatchCollector",
    "build_design_link",
    "build_issue_body",
    "component_name_for",
    "extract_file_key",
    "resolve_category",
    "resolve_file_key",
    "screen_name_for",
]
