"""JSON Schemas for the sync request and response documents.

The request schema only pins what makes a batch well formed as a whole
(owner, repo, an ``issues`` array). Per-item problems such as a missing
title are reported inside a 200 response, so item fields stay optional here.
"""

from __future__ import annotations

from typing import Any

from jsonschema import Draft7Validator

SCHEMA_KEY = "$schema"
SCHEMA_URL = "http://json-schema.org/draft-07/schema#"
SCHEMA_VERSION = "20250301"

_NON_EMPTY_STRING = {"type": "string", "minLength": 1}


def get_schemas() -> dict[str, Any]:
    """Return a mapping of schema name -> JSON Schema dictionary.

    Keys:
        sync_request:  Batch posted by the client to the sync endpoint.
        sync_response: Aggregate result returned for a well-formed batch.
    """
    request_schema: dict[str, Any] = {
        SCHEMA_KEY: SCHEMA_URL,
        "$comment": f"annosync sync request schema v{SCHEMA_VERSION}",
        "title": "SyncRequest",
        "type": "object",
        "required": ["owner", "repo", "issues"],
        "properties": {
            "owner": _NON_EMPTY_STRING,
            "repo": _NON_EMPTY_STRING,
            "issues": {
                "type": "array",
                # malformed entries are rejected per item by the service
                "items": {
                    "properties": {
                        "title": {},
                        "body": {},
                        "labels": {},
                        "nodeId": {},
                        "signature": {},
                    },
                },
            },
            "projectName": {"type": ["string", "null"]},
            "projectOwner": {"type": ["string", "null"]},
            "projectNumber": {"type": ["integer", "string", "null"]},
        },
    }
    response_schema: dict[str, Any] = {
        SCHEMA_KEY: SCHEMA_URL,
        "$comment": f"annosync sync response schema v{SCHEMA_VERSION}",
        "title": "SyncResponse",
        "type": "object",
        "required": ["created", "failed", "results"],
        "properties": {
            "created": {"type": "integer", "minimum": 0},
            "failed": {"type": "integer", "minimum": 0},
            "results": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["status"],
                    "properties": {
                        "nodeId": {"type": ["string", "null"]},
                        "signature": {"type": ["string", "null"]},
                        "status": {"type": "integer"},
                        "url": {"type": "string"},
                        "error": {"type": "string"},
                        "projectStatus": {
                            "type": "object",
                            "required": ["status"],
                            "properties": {
                                "status": {"type": "integer"},
                                "error": {"type": "string"},
                            },
                        },
                    },
                },
            },
        },
    }
    return {"sync_request": request_schema, "sync_response": response_schema}


def request_validator() -> Draft7Validator:
    return Draft7Validator(get_schemas()["sync_request"])


def response_validator() -> Draft7Validator:
    return Draft7Validator(get_schemas()["sync_response"])


__all__ = ["get_schemas", "request_validator", "response_validator", "SCHEMA_VERSION"]
