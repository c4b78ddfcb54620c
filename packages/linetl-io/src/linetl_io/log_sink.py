"""Log sink adapters for translation run events."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from linetl_core.ports.orchestrator import LogSinkProtocol
from linetl_schemas.config import LoggingConfig
from linetl_schemas.logs import LogEntry
from linetl_schemas.primitives import LogLevel, LogSinkType

if TYPE_CHECKING:
    from linetl_schemas.redaction import Redactor


class CompositeLogSink(LogSinkProtocol):
    """Log sink that forwards entries to multiple sinks."""

    def __init__(self, sinks: Iterable[LogSinkProtocol]) -> None:
        """Initialize the composite log sink."""
        self._sinks = list(sinks)

    async def emit_log(self, entry: LogEntry) -> None:
        """Forward log entries to each sink."""
        for sink in self._sinks:
            await sink.emit_log(entry)


class ConsoleLogSink(LogSinkProtocol):
    """Log sink that writes JSONL entries to stderr."""

    def __init__(
        self, stream: TextIO | None = None, min_level: LogLevel = LogLevel.INFO
    ) -> None:
        """Initialize the console log sink.

        Args:
            stream: Output stream to write JSONL log entries.
            min_level: Entries below this level are dropped.
        """
        self._stream = stream or sys.stderr
        self._min_rank = _LEVEL_RANK[LogLevel(min_level)]

    async def emit_log(self, entry: LogEntry) -> None:
        """Write log entry JSONL to the output stream."""
        if _LEVEL_RANK[LogLevel(entry.level)] < self._min_rank:
            return
        payload = entry.model_dump_json(exclude_none=True)
        self._stream.write(payload + "\n")
        self._stream.flush()


class FileLogSink(LogSinkProtocol):
    """Log sink that appends JSONL entries to ``<logs_dir>/<run_id>.jsonl``."""

    def __init__(self, logs_dir: str | Path) -> None:
        """Initialize the file log sink.

        Args:
            logs_dir: Directory holding one log file per run.
        """
        self._logs_dir = Path(logs_dir)
        self._lock = asyncio.Lock()

    def log_path(self, run_id: object) -> Path:
        """Return the log file path for a run."""
        return self._logs_dir / f"{run_id}.jsonl"

    async def emit_log(self, entry: LogEntry) -> None:
        """Append a log entry to the run's JSONL file."""
        async with self._lock:
            await asyncio.to_thread(
                _append_jsonl, self.log_path(entry.run_id), [entry]
            )


class NoopLogSink(LogSinkProtocol):
    """Log sink that drops all log entries."""

    async def emit_log(self, entry: LogEntry) -> None:
        """Ignore log entries."""
        return None


class RedactingLogSink(LogSinkProtocol):
    """Log sink wrapper that redacts secrets before forwarding to a delegate."""

    def __init__(self, delegate: LogSinkProtocol, redactor: Redactor) -> None:
        """Initialize the redacting log sink.

        Args:
            delegate: Underlying sink to forward redacted entries to.
            redactor: Redactor instance to apply before writing.
        """
        self._delegate = delegate
        self._redactor = redactor

    async def emit_log(self, entry: LogEntry) -> None:
        """Redact secrets from entry before forwarding to delegate sink."""
        message = self._redactor.redact(entry.message)
        data = None
        if entry.data is not None:
            data = {
                key: self._redactor.redact_value(value)
                for key, value in entry.data.items()
            }
        if message == entry.message and data == entry.data:
            await self._delegate.emit_log(entry)
            return
        await self._delegate.emit_log(
            entry.model_copy(update={"message": message, "data": data})
        )
        await self._delegate.emit_log(
            LogEntry(
                timestamp=datetime.now(UTC).isoformat(),
                level=LogLevel.DEBUG,
                event="redaction_applied",
                run_id=entry.run_id,
                message="Secret redaction applied to log entry",
                data={"original_event": entry.event},
            )
        )


def build_log_sink(
    logging_config: LoggingConfig,
    *,
    stream: TextIO | None = None,
    redactor: Redactor | None = None,
    console_level: LogLevel = LogLevel.INFO,
) -> LogSinkProtocol:
    """Build a log sink from configuration.

    Args:
        logging_config: Logging configuration for the run.
        stream: Optional stream for console logging.
        redactor: Optional redactor applied before writing logs.
        console_level: Minimum level written by the console sink.

    Returns:
        LogSinkProtocol: Configured log sink.

    Raises:
        ValueError: If an unsupported log sink type is configured.
    """
    sinks: list[LogSinkProtocol] = []
    for sink_config in logging_config.sinks:
        if sink_config.type == LogSinkType.FILE:
            sinks.append(FileLogSink(logging_config.logs_dir))
        elif sink_config.type == LogSinkType.CONSOLE:
            sinks.append(ConsoleLogSink(stream=stream, min_level=console_level))
        elif sink_config.type == LogSinkType.NOOP:
            sinks.append(NoopLogSink())
        else:
            raise ValueError(f"Unsupported log sink type: {sink_config.type}")

    if redactor is not None:
        sinks = [RedactingLogSink(sink, redactor) for sink in sinks]

    if len(sinks) == 1:
        return sinks[0]
    return CompositeLogSink(sinks)


_LEVEL_RANK = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARN: 2,
    LogLevel.ERROR: 3,
}


def _append_jsonl(path: Path, entries: Sequence[LogEntry]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as handle:
        handle.writelines(
            entry.model_dump_json(exclude_none=True) + "\n" for entry in entries
        )
