"""
Structured NDJSON output for machine consumers (`--json`).
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import click


class EventLogger:
    """Writes one JSON object per line to stdout"""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def emit(self, event: str, **payload: Any) -> None:
        if not self.enabled:
            return
        record = {'event': event}
        record.update(payload)
        click.echo(json.dumps(record, sort_keys=True, default=str))


class JsonLogHandler(logging.Handler):
    """Logging handler that renders records as NDJSON `log` events."""

    def __init__(self, events: EventLogger):
        super().__init__()
        self.events = events

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record) if self.formatter else record.getMessage()
            self.events.emit(
                'log',
                level=record.levelname,
                logger=record.name,
                message=message,
                time=datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            )
        except Exception:
            self.handleError(record)


class JsonLogCollector:
    """Manages lifecycle of the root-level JSON log handler."""

    def __init__(self, events: EventLogger):
        self.events = events
        self._handler: Optional[JsonLogHandler] = None
        self._previous_level: Optional[int] = None

    def start(self, level: int = logging.INFO) -> None:
        self.stop()  # Ensure any existing handler is removed first
        handler = JsonLogHandler(self.events)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root = logging.getLogger()
        root.addHandler(handler)
        if root.level > level:
            self._previous_level = root.level
            root.setLevel(level)
        self._handler = handler

    def stop(self) -> None:
        if self._handler is not None:
            root = logging.getLogger()
            root.removeHandler(self._handler)
            if self._previous_level is not None:
                root.setLevel(self._previous_level)
                self._previous_level = None
            self._handler = None
