"""Event taxonomy and structured payloads for run observability."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from linetl_schemas.base import BaseSchema
from linetl_schemas.primitives import (
    CredentialHealth,
    FailureKind,
    FailureReason,
    LanguageCode,
    RunStatus,
)


class RunEvent(StrEnum):
    """Event names for run lifecycle."""

    STARTED = "run_started"
    COMPLETED = "run_completed"
    FAILED = "run_failed"
    CANCELLED = "run_cancelled"


class BatchEvent(StrEnum):
    """Event names for batch dispatch."""

    DISPATCHED = "batch_dispatched"
    SUCCEEDED = "batch_succeeded"
    RETRYING = "batch_retrying"
    FAILED = "batch_failed"
    PARSE_FAILED = "batch_parse_failed"


class CredentialEvent(StrEnum):
    """Event names for credential health transitions."""

    COOLING = "credential_cooling"
    DEAD = "credential_dead"


class ExtractionEvent(StrEnum):
    """Event names for extraction."""

    LINE_DEMOTED = "line_demoted"


class RunStartedData(BaseSchema):
    """Payload for run start events."""

    source_language: LanguageCode = Field(..., description="Source language")
    target_language: LanguageCode = Field(..., description="Target language")
    total_lines: int = Field(..., ge=0, description="Lines in the input document")
    candidate_lines: int = Field(..., ge=0, description="Lines selected for work")
    batch_count: int = Field(..., ge=0, description="Planned batches")
    max_concurrent: int = Field(..., ge=1, description="In-flight request ceiling")


class RunCompletedData(BaseSchema):
    """Payload for run completion events."""

    status: RunStatus = Field(..., description="Final run status")
    translated_lines: int = Field(..., ge=0, description="Lines translated")
    failed_lines: int = Field(..., ge=0, description="Lines left untranslated")


class RunFailedData(BaseSchema):
    """Payload for run failure events."""

    error_code: str = Field(..., min_length=1, description="Error code")
    why: str = Field(..., min_length=1, description="Failure reason")
    next_action: str = Field(..., min_length=1, description="Suggested next action")


class BatchEventData(BaseSchema):
    """Payload for batch dispatch events."""

    size: int = Field(..., ge=1, description="Lines in the batch")
    attempt: int | None = Field(None, ge=1, description="Attempt number")
    credential: str | None = Field(None, description="Credential used")
    failure_kind: FailureKind | None = Field(None, description="Attempt failure kind")
    failure_reason: FailureReason | None = Field(
        None, description="Terminal failure reason"
    )
    delay_s: float | None = Field(None, ge=0, description="Backoff before retry")
    error_message: str | None = Field(None, description="Error message")


class ParseFailureData(BaseSchema):
    """Payload for response segment count mismatches."""

    expected: int = Field(..., ge=0, description="Batch member count")
    received: int = Field(..., ge=0, description="Segments extracted")
    pairs: list[list[str]] = Field(
        default_factory=list,
        description="Aligned [source, segment] samples for diagnosis",
    )


class CredentialEventData(BaseSchema):
    """Payload for credential health transitions."""

    credential: str = Field(..., min_length=1, description="Credential name")
    health: CredentialHealth = Field(..., description="New health state")
    failure_kind: FailureKind = Field(..., description="Failure that caused it")
    cooldown_s: float | None = Field(None, ge=0, description="Cooldown duration")
