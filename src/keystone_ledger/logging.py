"""Structured JSONL logging.

Every log line is one JSON object validated through ``LogEntry``:
{timestamp, level, event, run_id, phase, message, data}
"""

from __future__ import annotations

import sys
import threading
from datetime import UTC, datetime
from typing import Literal, TextIO

from pydantic import BaseModel, Field

LogLevel = Literal["debug", "info", "warn", "error"]
LogData = dict[str, str | int | float | bool | None]

_LEVEL_ORDER: dict[str, int] = {"debug": 0, "info": 1, "warn": 2, "error": 3}


class LogEntry(BaseModel):
    """Single log line in JSONL format."""

    timestamp: str = Field(..., description="ISO-8601 timestamp")
    level: LogLevel = Field(..., description="Log level")
    event: str = Field(..., description="Event type (e.g., character_fetched)")
    run_id: str = Field(..., description="Pipeline run identifier")
    phase: str | None = Field(None, description="Pipeline phase if applicable")
    message: str = Field(..., description="Human-readable log message")
    data: LogData | None = Field(None, description="Structured event data")


class Logger:
    """Structured JSONL logger, safe to call from fetch worker threads.

    Usage:
        logger = Logger(run_id="abc123")
        logger.info(Events.RUN_STARTED, "Starting report run", data={"roster": 12})
        logger.warn(
            Events.FETCH_RETRY, "Retrying with toggled name", phase="fetch"
        )
    """

    def __init__(
        self,
        run_id: str,
        stream: TextIO | None = None,
        min_level: LogLevel = "info",
    ) -> None:
        self.run_id = run_id
        self.stream = stream or sys.stderr
        self.min_level = min_level
        self._lock = threading.Lock()

    def _should_log(self, level: LogLevel) -> bool:
        return _LEVEL_ORDER[level] >= _LEVEL_ORDER[self.min_level]

    def _emit(
        self,
        level: LogLevel,
        event: str,
        message: str,
        phase: str | None = None,
        data: LogData | None = None,
    ) -> None:
        if not self._should_log(level):
            return

        entry = LogEntry(
            timestamp=datetime.now(UTC).isoformat(),
            level=level,
            event=event,
            run_id=self.run_id,
            phase=phase,
            message=message,
            data=data,
        )
        line = entry.model_dump_json() + "\n"
        with self._lock:
            self.stream.write(line)
            self.stream.flush()

    def debug(
        self,
        event: str,
        message: str,
        *,
        phase: str | None = None,
        data: LogData | None = None,
    ) -> None:
        self._emit("debug", event, message, phase, data)

    def info(
        self,
        event: str,
        message: str,
        *,
        phase: str | None = None,
        data: LogData | None = None,
    ) -> None:
        self._emit("info", event, message, phase, data)

    def warn(
        self,
        event: str,
        message: str,
        *,
        phase: str | None = None,
        data: LogData | None = None,
    ) -> None:
        self._emit("warn", event, message, phase, data)

    def error(
        self,
        event: str,
        message: str,
        *,
        phase: str | None = None,
        data: LogData | None = None,
    ) -> None:
        self._emit("error", event, message, phase, data)


class Events:
    """Standard event names for logging."""

    # Lifecycle events
    RUN_STARTED = "run_started"
    RUN_COMPLETED = "run_completed"
    RUN_ABORTED = "run_aborted"

    # Per-character events
    CHARACTER_FETCHED = "character_fetched"
    FETCH_RETRY = "fetch_retry"
    CHARACTER_FAILED = "character_failed"
    UNKNOWN_DUNGEONS = "unknown_dungeons"

    # Data events
    DATA_LOADED = "data_loaded"
    DATA_WRITTEN = "data_written"
