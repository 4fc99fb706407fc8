import json
import logging

from annosync.logging import JSONFormatter, StructuredLogger, configure_logging, get_logger


def _record(message, **extra):
    record = logging.LogRecord("annosync", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extras_and_redacts():
    token = "ghp_" + "b" * 36
    line = JSONFormatter().format(_record(f"using {token}", operation="sync", header=token, count=3))
    entry = json.loads(line)

    assert entry["level"] == "INFO"
    assert entry["logger"] == "annosync"
    assert entry["operation"] == "sync"
    assert entry["count"] == 3
    assert token not in line


def test_structured_logger_json_output(capsys):
    logger = StructuredLogger(name="annosync.test", json_logging=True)
    logger.log_issue_action("created", "1:2", "a1b2", 201, url="https://x/1")

    entry = json.loads(capsys.readouterr().out.strip())
    assert entry["operation"] == "issue_created"
    assert entry["node_id"] == "1:2"
    assert entry["signature"] == "a1b2"
    assert entry["status"] == 201


def test_timed_operation_logs_failure_and_reraises(capsys):
    logger = StructuredLogger(name="annosync.timed", json_logging=True)
    try:
        with logger.timed_operation("sync_batch", batch_size=2):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    else:  # pragma: no cover
        raise AssertionError("timed_operation swallowed the error")

    lines = [json.loads(line) for line in capsys.readouterr().out.strip().splitlines()]
    assert lines[0]["operation"] == "sync_batch_start"
    assert lines[-1]["level"] == "ERROR"
    assert lines[-1]["error"] == "boom"


def test_configure_logging_replaces_global():
    configured = configure_logging(json_logging=False, level="WARNING")
    assert get_logger() is configured


def test_configured_secret_is_redacted_in_both_formats(capsys):
    plain = configure_logging(json_logging=False, secrets=("s3cret-value",))
    plain.warning("sending with secret s3cret-value")
    plain.log_error("sync failed", error="header X-QA-Secret: s3cret-value")

    structured = StructuredLogger(name="annosync.secret", json_logging=True, secrets=["s3cret-value"])
    structured.info("retrying", secret_header="s3cret-value")

    out = capsys.readouterr().out
    assert "s3cret-value" not in out
    assert out.count("<redacted>") >= 2
    entry = json.loads(out.strip().splitlines()[-1])
    assert entry["secret_header"] == "<redacted>"
