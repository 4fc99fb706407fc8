import pytest
import requests

from fakes import DummyResponse, DummySession, SlowSession

from annosync.models import (
    IssueRequestItem,
    ProjectReference,
    SyncRejected,
    SyncSuccess,
    SyncUnreachable,
)
from annosync.transport import (
    SECRET_HEADER,
    TIMEOUT_MESSAGE,
    TransportClient,
    build_request_payload,
    describe_outcome,
)

ENDPOINT = "https://qa.example.com/api/qa-issues"


def _batch():
    return [
        IssueRequestItem("[QA] Fix Button", "body", ["QA"], "1:2", "a1b2"),
        IssueRequestItem("[QA] Fix Title", "body", ["QA"], "1:3", "c3d4"),
    ]


def _send(session, secret="s3cret", timeout=5.0, project=None):
    client = TransportClient(timeout_seconds=timeout, session=session)
    return client.send(ENDPOINT, secret, _batch(), owner="acme", repo="widgets", project=project)


def test_payload_shape_with_project():
    payload = build_request_payload(
        _batch()[:1],
        owner="acme",
        repo="widgets",
        project=ProjectReference(name="QA Board", owner="acme-org", number=None),
    )
    assert payload == {
        "owner": "acme",
        "repo": "widgets",
        "issues": [
            {
                "title": "[QA] Fix Button",
                "body": "body",
                "labels": ["QA"],
                "nodeId": "1:2",
                "signature": "a1b2",
            }
        ],
        "projectName": "QA Board",
        "projectOwner": "acme-org",
    }


def test_success_outcome_and_request_headers():
    session = DummySession(
        [
            DummyResponse(
                200,
                {
                    "created": 1,
                    "failed": 1,
                    "results": [
                        {"nodeId": "1:2", "signature": "a1b2", "status": 201, "url": "https://x/1"},
                        {"nodeId": "1:3", "signature": "c3d4", "status": 422, "error": "bad"},
                        "garbage",
                    ],
                },
            )
        ]
    )
    outcome = _send(session)

    assert isinstance(outcome, SyncSuccess)
    assert (outcome.created, outcome.failed) == (1, 1)
    assert [r.node_id for r in outcome.results] == ["1:2", "1:3"]
    assert outcome.results[0].succeeded and not outcome.results[1].succeeded

    method, url, call = session.request_log[0]
    assert (method, url) == ("POST", ENDPOINT)
    assert call["headers"][SECRET_HEADER] == "s3cret"
    assert call["headers"]["Content-Type"] == "application/json"
    assert call["json"]["owner"] == "acme"
    assert len(call["json"]["issues"]) == 2


def test_secret_header_omitted_when_not_configured():
    session = DummySession([DummyResponse(200, {"created": 0, "failed": 0, "results": []})])
    _send(session, secret=None)
    assert SECRET_HEADER not in session.request_log[0][2]["headers"]


def test_missing_results_is_empty_list():
    outcome = _send(DummySession([DummyResponse(200, {"created": 0})]))
    assert isinstance(outcome, SyncSuccess)
    assert outcome.results == []


def test_non_2xx_is_rejected_with_body_text():
    outcome = _send(DummySession([DummyResponse(401, {"error": "Unauthorized"}, reason="Unauthorized")]))
    assert isinstance(outcome, SyncRejected)
    assert outcome.http_status == 401
    assert "Unauthorized" in outcome.message
    assert describe_outcome(outcome).startswith("Server error (401): ")


def test_non_2xx_without_body_uses_reason():
    outcome = _send(DummySession([DummyResponse(502, "", reason="Bad Gateway")]))
    assert outcome == SyncRejected(502, "Bad Gateway")


@pytest.mark.parametrize("payload", ["<html>oops</html>", [1, 2]])
def test_malformed_success_body_is_rejected(payload):
    outcome = _send(DummySession([DummyResponse(200, payload)]))
    assert outcome == SyncRejected(200, "Invalid response payload")


def test_wall_clock_timeout_is_distinct_from_connection_error():
    timed_out = _send(SlowSession(delay=0.5), timeout=0.05)
    refused = _send(DummySession([requests.ConnectionError("connection refused")]))

    assert timed_out == SyncUnreachable("timeout")
    assert timed_out.timed_out
    assert isinstance(refused, SyncUnreachable)
    assert not refused.timed_out
    assert refused.reason.startswith("connection error: ")

    assert describe_outcome(timed_out) == TIMEOUT_MESSAGE
    assert describe_outcome(refused) != TIMEOUT_MESSAGE
    assert describe_outcome(refused).startswith("Request failed: connection error")


def test_requests_timeout_maps_to_timeout():
    outcome = _send(DummySession([requests.ReadTimeout("read timed out")]))
    assert outcome == SyncUnreachable("timeout")


def test_socket_timeout_matches_bound():
    session = DummySession([DummyResponse(200, {"created": 0, "failed": 0, "results": []})])
    _send(session, timeout=7.5)
    assert session.request_log[0][2]["timeout"] == 7.5
