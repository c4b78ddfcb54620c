"""Primitive types and enums shared across linetl schemas."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated
from uuid import UUID

from pydantic import Field

ISO_8601_PATTERN = (
    r"^\d{4}-\d{2}-\d{2}T"
    r"\d{2}:\d{2}:\d{2}"
    r"(?:\.\d+)?"
    r"(?:Z|[+-]\d{2}:\d{2})$"
)
LANGUAGE_CODE_PATTERN = r"^[a-z]{2,3}(?:-[A-Z]{2})?$"
EVENT_NAME_PATTERN = r"^[a-z][a-z0-9_]*$"

# Placeholder substituted with translated text in replace expressions
TRANSLATION_PLACEHOLDER = "$trans"

type RunId = UUID
type RequestId = UUID
type Timestamp = Annotated[str, Field(pattern=ISO_8601_PATTERN)]
type LanguageCode = Annotated[str, Field(pattern=LANGUAGE_CODE_PATTERN)]
type EventName = Annotated[str, Field(pattern=EVENT_NAME_PATTERN)]

type JsonPrimitive = str | int | float | bool | None
type JsonValue = JsonPrimitive | list["JsonValue"] | dict[str, "JsonValue"]


class TranslationMode(StrEnum):
    """How translatable text is located inside a candidate line."""

    TEXT = "text"
    REPLACE = "replace"


class EscapeMode(StrEnum):
    """Escaping applied to translated text before reinjection."""

    NONE = "none"
    JSON = "json"


class ChatRole(StrEnum):
    """Chat message roles accepted by OpenAI-compatible APIs."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class CredentialHealth(StrEnum):
    """Health states for a pooled API credential."""

    HEALTHY = "healthy"
    COOLING = "cooling"
    DEAD = "dead"


class FailureKind(StrEnum):
    """Classification of a failed request attempt."""

    AUTH = "auth"
    QUOTA = "quota"
    RATE_LIMIT = "rate_limit"
    TRANSPORT = "transport"


class BatchStatus(StrEnum):
    """Lifecycle states of a dispatched batch."""

    PENDING = "pending"
    DISPATCHED = "dispatched"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    RETRYING = "retrying"
    REINJECTED = "reinjected"
    FAILED_FINAL = "failed_final"


class FailureReason(StrEnum):
    """Why a batch ended in the failed-final state."""

    RETRIES_EXHAUSTED = "retries_exhausted"
    POOL_EXHAUSTED = "pool_exhausted"
    PARSE_ERROR = "parse_error"
    RUNTIME_ERROR = "runtime_error"
    CANCELLED = "cancelled"


class ExtractionWarningReason(StrEnum):
    """Why a filtered line was demoted to pass-through."""

    NO_MATCH = "no_match"
    EMPTY_TEXT = "empty_text"


class RunStatus(StrEnum):
    """Overall run status values."""

    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ConnectionStatus(StrEnum):
    """Connectivity check status values."""

    SUCCESS = "success"
    FAILED = "failed"


class LogLevel(StrEnum):
    """Log level values for JSONL logs."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class LogSinkType(StrEnum):
    """Supported log sink types."""

    CONSOLE = "console"
    FILE = "file"
    NOOP = "noop"
