"""JSONL log entry schema for translation run events."""

from __future__ import annotations

from pydantic import Field

from linetl_schemas.base import BaseSchema
from linetl_schemas.primitives import (
    EventName,
    JsonValue,
    LogLevel,
    RunId,
    Timestamp,
)


class LogEntry(BaseSchema):
    """Single log line in JSONL format."""

    timestamp: Timestamp = Field(
        ..., description="ISO-8601 timestamp for the log entry"
    )
    level: LogLevel = Field(..., description="Log level")
    event: EventName = Field(..., description="Event name")
    run_id: RunId = Field(..., description="Translation run identifier")
    batch_id: int | None = Field(None, ge=0, description="Batch id if applicable")
    message: str = Field(..., min_length=1, description="Log message")
    data: dict[str, JsonValue] | None = Field(None, description="Structured event data")
