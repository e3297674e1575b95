from __future__ import annotations

import json

import pytest
import structlog

from wiretag.log import configure_logging


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()


def test_json_events_go_to_stderr(capsys) -> None:
    configure_logging("info", json_output=True)
    structlog.get_logger("wiretag.test").info("audit_completed", checked=3)
    captured = capsys.readouterr()
    assert captured.out == ""
    event = json.loads(captured.err.strip())
    assert event["event"] == "audit_completed"
    assert event["checked"] == 3
    assert event["level"] == "info"
    assert "timestamp" in event


def test_events_below_level_are_dropped(capsys) -> None:
    configure_logging("warning")
    logger = structlog.get_logger("wiretag.test")
    logger.debug("scan_file_skipped", path="x.py")
    logger.info("audit_completed")
    assert capsys.readouterr().err == ""


def test_unknown_level_is_rejected() -> None:
    with pytest.raises(ValueError):
        configure_logging("chatty")
