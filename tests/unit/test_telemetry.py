from __future__ import annotations

import json
import logging

import pytest

from filepilot_git.telemetry import (
    APP_NAME,
    LoggingTelemetrySink,
    TelemetryEvent,
    emit,
)


@pytest.mark.parametrize(
    ("action", "event_type"),
    [
        ("navigation", "navigation"),
        ("git_status_failed", "error"),
        ("git_commit_failed", "error"),
        ("git_file_staged", "user_action"),
        ("git_repos_discovered", "user_action"),
    ],
)
def test_event_type(action: str, event_type: str) -> None:
    assert TelemetryEvent(action=action).event_type == event_type


def test_payload_shape() -> None:
    event = TelemetryEvent(action="git_file_staged", metadata={"file": "a.txt"})

    payload = event.to_payload()

    assert payload["event"] == "user_action"
    assert payload["metadata"] == {"file": "a.txt", "action": "git_file_staged", "app": APP_NAME}
    assert payload["timestamp"] == event.timestamp.isoformat()


def test_logging_sink_writes_json(caplog: pytest.LogCaptureFixture) -> None:
    sink = LoggingTelemetrySink()

    with caplog.at_level(logging.DEBUG, logger="filepilot_git.telemetry.events"):
        emit(sink, "git_commit_created", repo="widgets", file_count=2)

    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["metadata"]["repo"] == "widgets"
    assert payload["metadata"]["action"] == "git_commit_created"


def test_emit_swallows_sink_failures() -> None:
    class BrokenSink:
        def record(self, event: TelemetryEvent) -> None:
            raise RuntimeError("sink offline")

    emit(BrokenSink(), "git_file_staged", file="a.txt")
