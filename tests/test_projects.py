import pytest
import requests

from fakes import DummyResponse, DummySession

from annosync.github_rest import GitHubRestClient
from annosync.models import ProjectBoard, ProjectReference
from annosync.projects import (
    ProjectBoardResolver,
    parse_project_number,
    project_reference_from_payload,
)


def _resolver(responses):
    session = DummySession(responses)
    return ProjectBoardResolver(GitHubRestClient(token="tkn", session=session)), session


def _gql_errors():
    return DummyResponse(200, {"errors": [{"message": "Could not resolve to an Organization"}]})


def test_resolve_number_prefers_organization():
    resolver, session = _resolver(
        [DummyResponse(200, {"data": {"organization": {"projectV2": {"id": "PVT_org", "number": 3}}}})]
    )
    board = resolver.resolve("acme", 3)

    assert board == ProjectBoard(id="PVT_org", scope="organization", owner="acme", number=3)
    call = session.request_log[0][2]["json"]
    assert "organization(login: $owner)" in call["query"]
    assert call["variables"] == {"owner": "acme", "number": 3}


def test_resolve_number_falls_back_to_user():
    resolver, session = _resolver(
        [
            _gql_errors(),
            DummyResponse(200, {"data": {"user": {"projectV2": {"id": "PVT_user"}}}}),
        ]
    )
    board = resolver.resolve("octocat", 7)

    assert board is not None
    assert (board.id, board.scope, board.number) == ("PVT_user", "user", 7)
    assert "user(login: $owner)" in session.request_log[1][2]["json"]["query"]


def test_resolve_name_matches_exact_title():
    nodes = [
        {"id": "PVT_1", "title": "qa board", "number": 1},
        {"id": "PVT_2", "title": "QA Board", "number": 2},
    ]
    resolver, session = _resolver(
        [DummyResponse(200, {"data": {"organization": {"projectsV2": {"nodes": nodes}}}})]
    )
    board = resolver.resolve("acme", "QA Board")

    assert board is not None and board.id == "PVT_2"
    assert board.name == "QA Board"
    assert session.request_log[0][2]["json"]["variables"]["first"] == 50


def test_resolve_returns_none_when_nothing_matches():
    resolver, _ = _resolver(
        [
            DummyResponse(200, {"data": {"organization": {"projectsV2": {"nodes": []}}}}),
            DummyResponse(200, {"data": {"user": None}}),
        ]
    )
    assert resolver.resolve("acme", "Missing") is None


def test_resolve_degrades_on_network_failure():
    resolver, _ = _resolver([requests.ConnectionError("down"), requests.ConnectionError("down")])
    assert resolver.resolve("acme", 5) is None


def test_resolve_requires_owner_and_reference():
    resolver, session = _resolver([])
    assert resolver.resolve("", 1) is None
    assert resolver.resolve("acme", None) is None
    assert session.request_log == []


def test_resolve_reference_defaults_owner_and_prefers_number():
    resolver, session = _resolver(
        [DummyResponse(200, {"data": {"organization": {"projectV2": {"id": "PVT_9"}}}})]
    )
    board = resolver.resolve_reference(ProjectReference(name="Ignored", number=9), "acme")

    assert board is not None and board.owner == "acme"
    assert session.request_log[0][2]["json"]["variables"] == {"owner": "acme", "number": 9}


BOARD = ProjectBoard(id="PVT_1", scope="organization", owner="acme", number=1)


def test_attach_success():
    resolver, session = _resolver(
        [DummyResponse(200, {"data": {"addProjectV2ItemById": {"item": {"id": "PVTI_1"}}}})]
    )
    status = resolver.attach(BOARD, "I_42")

    assert (status.status, status.error) == (200, None)
    assert session.request_log[0][2]["json"]["variables"] == {"projectId": "PVT_1", "contentId": "I_42"}


def test_attach_graphql_error_is_422():
    resolver, _ = _resolver([DummyResponse(200, {"errors": [{"message": "denied"}]})])
    status = resolver.attach(BOARD, "I_42")
    assert status.status == 422
    assert "denied" in (status.error or "")


def test_attach_http_error_keeps_status():
    resolver, _ = _resolver([DummyResponse(403, {"message": "Resource not accessible"})])
    status = resolver.attach(BOARD, "I_42")
    assert (status.status, status.error) == (403, "Resource not accessible")


def test_attach_without_node_id_or_with_network_error_is_500():
    resolver, _ = _resolver([requests.ConnectionError("reset")])
    assert resolver.attach(BOARD, None).status == 500
    assert resolver.attach(BOARD, "I_42").status == 500


@pytest.mark.parametrize(
    ("value", "expected"),
    [(3, 3), ("12", 12), (" 4 ", 4), (0, None), ("-1", None), ("abc", None), (True, None), (None, None)],
)
def test_parse_project_number(value, expected):
    assert parse_project_number(value) == expected


def test_project_reference_from_payload_trims_values():
    ref = project_reference_from_payload({"projectName": "  QA  ", "projectOwner": " ", "projectNumber": "5"})
    assert ref == ProjectReference(name="QA", owner=None, number=5)
    assert not project_reference_from_payload({}).configured


def test_digit_only_name_is_matched_by_title():
    resolver, session = _resolver(
        [
            DummyResponse(
                200,
                {"data": {"organization": {"projectsV2": {"nodes": [{"id": "PVT_N", "title": "2024"}]}}}},
            )
        ]
    )
    board = resolver.resolve_reference(ProjectReference(name="2024"), "acme")

    assert board is not None
    assert (board.id, board.name, board.number) == ("PVT_N", "2024", None)
    query = session.request_log[0][2]["json"]["query"]
    assert "projectsV2(first: $first)" in query
    assert "projectV2(number:" not in query
