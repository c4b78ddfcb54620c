"""Protocol definitions, errors and log builders for translation runs."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Protocol, runtime_checkable

from pydantic import Field

from linetl_schemas.base import BaseSchema
from linetl_schemas.events import (
    BatchEvent,
    BatchEventData,
    CredentialEvent,
    CredentialEventData,
    ExtractionEvent,
    ParseFailureData,
    RunCompletedData,
    RunEvent,
    RunFailedData,
    RunStartedData,
)
from linetl_schemas.logs import LogEntry
from linetl_schemas.primitives import (
    CredentialHealth,
    ExtractionWarningReason,
    LanguageCode,
    LogLevel,
    RunId,
    RunStatus,
    Timestamp,
)
from linetl_schemas.responses import ErrorDetails, ErrorResponse
from linetl_schemas.results import BatchReport

type ProgressCallback = Callable[[BatchReport], None]


@runtime_checkable
class LogSinkProtocol(Protocol):
    """Protocol for emitting JSONL log entries."""

    async def emit_log(self, entry: LogEntry) -> None:
        """Emit a log entry."""
        raise NotImplementedError


class TranslationErrorCode(StrEnum):
    """Categorized error codes for translation run failures."""

    INVALID_CONFIG = "invalid_config"
    NO_CREDENTIALS = "no_credentials"
    BATCHES_FAILED = "batches_failed"
    POOL_EXHAUSTED = "pool_exhausted"
    CANCELLED = "cancelled"


class TranslationErrorDetails(BaseSchema):
    """Detailed translation error context."""

    field: str | None = Field(None, description="Config field associated with error")
    provided: str | None = Field(None, description="Provided value if available")
    failed_line_indices: list[int] | None = Field(
        None, description="Lines left untranslated"
    )
    reason: str | None = Field(None, description="Additional error context")


class TranslationErrorInfo(BaseSchema):
    """Structured translation error data."""

    code: TranslationErrorCode = Field(..., description="Error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: TranslationErrorDetails | None = Field(None, description="Error details")

    def to_error_response(self) -> ErrorResponse:
        """Convert translation error info to standard error response.

        Returns:
            ErrorResponse: Standard response error payload.
        """
        details: ErrorDetails | None = None
        if self.details is not None and self.details.field is not None:
            details = ErrorDetails(
                field=self.details.field,
                provided=self.details.provided,
                valid_options=None,
            )
        code_value = getattr(self.code, "value", self.code)
        return ErrorResponse(
            code=str(code_value), message=self.message, details=details
        )


class TranslationError(Exception):
    """Translation error with structured details."""

    def __init__(self, info: TranslationErrorInfo) -> None:
        """Initialize the translation error.

        Args:
            info: Structured translation error information.
        """
        super().__init__(info.message)
        self.info = info


class ConfigurationError(TranslationError):
    """Invalid configuration detected before any dispatch."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        provided: str | None = None,
        code: TranslationErrorCode = TranslationErrorCode.INVALID_CONFIG,
    ) -> None:
        """Initialize the configuration error.

        Args:
            message: Error message.
            field: Config field at fault.
            provided: Offending value.
            code: Error code, NO_CREDENTIALS for an unusable pool.
        """
        super().__init__(
            TranslationErrorInfo(
                code=code,
                message=message,
                details=TranslationErrorDetails(field=field, provided=provided),
            )
        )


def build_run_started_log(
    timestamp: Timestamp,
    run_id: RunId,
    *,
    source_language: LanguageCode,
    target_language: LanguageCode,
    total_lines: int,
    candidate_lines: int,
    batch_count: int,
    max_concurrent: int,
) -> LogEntry:
    """Build a log entry for run start.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Translation run identifier.
        source_language: Source language code.
        target_language: Target language code.
        total_lines: Lines in the input document.
        candidate_lines: Lines selected for translation.
        batch_count: Planned batch count.
        max_concurrent: In-flight request ceiling.

    Returns:
        LogEntry: Structured run start log entry.
    """
    data = RunStartedData(
        source_language=source_language,
        target_language=target_language,
        total_lines=total_lines,
        candidate_lines=candidate_lines,
        batch_count=batch_count,
        max_concurrent=max_concurrent,
    )
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.INFO,
        event=RunEvent.STARTED,
        run_id=run_id,
        message="Run started",
        data=data.model_dump(exclude_none=True),
    )


def build_run_completed_log(
    timestamp: Timestamp,
    run_id: RunId,
    status: RunStatus,
    *,
    translated_lines: int,
    failed_lines: int,
) -> LogEntry:
    """Build a log entry for run completion.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Translation run identifier.
        status: Final run status.
        translated_lines: Lines translated.
        failed_lines: Lines left untranslated.

    Returns:
        LogEntry: Structured run completion log entry.
    """
    event = RunEvent.CANCELLED if status == RunStatus.CANCELLED else RunEvent.COMPLETED
    level = LogLevel.INFO if failed_lines == 0 else LogLevel.WARN
    return LogEntry(
        timestamp=timestamp,
        level=level,
        event=event,
        run_id=run_id,
        message=f"Run {status}",
        data=RunCompletedData(
            status=status,
            translated_lines=translated_lines,
            failed_lines=failed_lines,
        ).model_dump(exclude_none=True),
    )


def build_run_failed_log(
    timestamp: Timestamp,
    run_id: RunId,
    message: str,
    error_code: str,
    why: str,
    next_action: str,
) -> LogEntry:
    """Build a log entry for run failure.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Translation run identifier.
        message: Failure message.
        error_code: Error code describing the failure.
        why: Reason for the failure.
        next_action: Suggested next action.

    Returns:
        LogEntry: Structured run failure log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.ERROR,
        event=RunEvent.FAILED,
        run_id=run_id,
        message=message,
        data=RunFailedData(
            error_code=error_code, why=why, next_action=next_action
        ).model_dump(exclude_none=True),
    )


def build_batch_log(
    timestamp: Timestamp,
    run_id: RunId,
    batch_id: int,
    event: BatchEvent,
    message: str,
    data: BatchEventData,
    level: LogLevel = LogLevel.INFO,
) -> LogEntry:
    """Build a log entry for a batch dispatch event.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Translation run identifier.
        batch_id: Batch sequence id.
        event: Batch event name.
        message: Log message.
        data: Structured batch payload.
        level: Log level.

    Returns:
        LogEntry: Structured batch log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=level,
        event=event,
        run_id=run_id,
        batch_id=batch_id,
        message=message,
        data=data.model_dump(exclude_none=True),
    )


def build_parse_failed_log(
    timestamp: Timestamp,
    run_id: RunId,
    batch_id: int,
    data: ParseFailureData,
) -> LogEntry:
    """Build a diagnostic log entry for a segment count mismatch.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Translation run identifier.
        batch_id: Batch sequence id.
        data: Expected/received counts and aligned samples.

    Returns:
        LogEntry: Structured parse failure log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.ERROR,
        event=BatchEvent.PARSE_FAILED,
        run_id=run_id,
        batch_id=batch_id,
        message=(
            f"Response yielded {data.received} segment(s) "
            f"for {data.expected} line(s)"
        ),
        data=data.model_dump(exclude_none=True),
    )


def build_credential_log(
    timestamp: Timestamp, run_id: RunId, data: CredentialEventData
) -> LogEntry:
    """Build a log entry for a credential health transition.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Translation run identifier.
        data: Credential transition payload.

    Returns:
        LogEntry: Structured credential log entry.
    """
    is_dead = data.health == CredentialHealth.DEAD
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.ERROR if is_dead else LogLevel.WARN,
        event=CredentialEvent.DEAD if is_dead else CredentialEvent.COOLING,
        run_id=run_id,
        message=f"Credential {data.credential} is {data.health}",
        data=data.model_dump(exclude_none=True),
    )


def build_line_demoted_log(
    timestamp: Timestamp,
    run_id: RunId,
    line_index: int,
    reason: ExtractionWarningReason,
) -> LogEntry:
    """Build a log entry for a candidate line demoted during extraction.

    Args:
        timestamp: ISO-8601 timestamp.
        run_id: Translation run identifier.
        line_index: 0-based line index.
        reason: Demotion reason.

    Returns:
        LogEntry: Structured extraction warning log entry.
    """
    return LogEntry(
        timestamp=timestamp,
        level=LogLevel.WARN,
        event=ExtractionEvent.LINE_DEMOTED,
        run_id=run_id,
        message=f"Line {line_index + 1} passed through untranslated ({reason})",
        data={"line_index": line_index, "reason": str(reason)},
    )
