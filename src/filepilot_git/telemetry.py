"""Best-effort analytics events.

The real sink belongs to the host application. This module defines the
seam it plugs into plus two local sinks, and guarantees that recording an
event can never break the operation being described.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from filepilot_git.core.console import get_logger

logger = get_logger(__name__)

APP_NAME = "FilePilot"


@dataclass(frozen=True)
class TelemetryEvent:
    action: str
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def event_type(self) -> str:
        if self.action in {"navigation", "navigated"}:
            return "navigation"
        if "error" in self.action or self.action.endswith("_failed"):
            return "error"
        return "user_action"

    def to_payload(self) -> dict[str, Any]:
        return {
            "event": self.event_type,
            "metadata": {**self.metadata, "action": self.action, "app": APP_NAME},
            "timestamp": self.timestamp.isoformat(),
        }


class TelemetrySink(Protocol):
    def record(self, event: TelemetryEvent) -> None: ...


class NullTelemetrySink:
    def record(self, event: TelemetryEvent) -> None:
        return None


class LoggingTelemetrySink:
    """Write each event payload to the debug log as JSON."""

    def __init__(self, logger_name: str = "filepilot_git.telemetry.events") -> None:
        self._logger = get_logger(logger_name)

    def record(self, event: TelemetryEvent) -> None:
        self._logger.debug("%s", json.dumps(event.to_payload(), default=str, sort_keys=True))


def emit(sink: TelemetrySink, action: str, **metadata: Any) -> None:
    """Record an event; sink failures are logged and dropped."""
    try:
        sink.record(TelemetryEvent(action=action, metadata=metadata))
    except Exception:
        logger.debug("Telemetry sink rejected %s", action, exc_info=True)
