"""Unit tests for the structured JSON logger."""

import io
import json

from imapsweep.utils.logging import REDACTED, JsonLogger, get_logger


def _events(stream: io.StringIO):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def test_events_are_single_json_lines():
    stream = io.StringIO()
    logger = JsonLogger(component="imapsweep.imap", stream=stream)

    logger.info("connected", host="imap.example.org", port=993)
    logger.warning("authentication attempt failed", scheme="login")

    first, second = _events(stream)
    assert first["lvl"] == "INFO"
    assert first["component"] == "imapsweep.imap"
    assert first["host"] == "imap.example.org"
    assert first["port"] == 993
    assert second["lvl"] == "WARN"


def test_sensitive_fields_are_redacted_at_any_depth():
    stream = io.StringIO()
    logger = JsonLogger(stream=stream)

    logger.error("login failed", password="hunter2", account={"credentials": "x", "host": "h"})

    (event,) = _events(stream)
    assert event["password"] == REDACTED
    assert event["account"] == {"credentials": REDACTED, "host": "h"}
    assert "hunter2" not in stream.getvalue()


def test_non_json_values_are_stringified():
    stream = io.StringIO()

    JsonLogger(stream=stream).debug("search finished", criteria=("UID", "1:5"), extra=object())

    (event,) = _events(stream)
    assert event["criteria"] == ["UID", "1:5"]
    assert event["extra"].startswith("<object object")


def test_get_logger_writes_to_stderr(capsys):
    get_logger("imapsweep.cli").info("started")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert json.loads(captured.err)["msg"] == "started"
