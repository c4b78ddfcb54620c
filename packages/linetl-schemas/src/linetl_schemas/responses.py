"""API response envelope schemas for CLI output."""

from __future__ import annotations

from pydantic import Field, field_validator

from linetl_schemas.base import BaseSchema
from linetl_schemas.primitives import (
    LanguageCode,
    RequestId,
    Timestamp,
    TranslationMode,
)


class MetaInfo(BaseSchema):
    """Metadata for API responses."""

    timestamp: Timestamp = Field(..., description="ISO-8601 response timestamp")
    request_id: RequestId | None = Field(
        None, description="Optional request identifier"
    )


class ErrorDetails(BaseSchema):
    """Detailed error context for responses."""

    field: str | None = Field(None, description="Field name if applicable")
    provided: str | None = Field(None, description="Provided value")
    valid_options: list[str] | None = Field(
        None, description="Valid options if applicable"
    )


class ErrorResponse(BaseSchema):
    """Error information in response."""

    code: str = Field(..., min_length=1, description="Error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: ErrorDetails | None = Field(None, description="Optional error details")
    exit_code: int | None = Field(None, ge=0, description="Process exit code")


class ApiResponse[ResponseData](BaseSchema):
    """Generic API response envelope."""

    data: ResponseData | None = Field(
        None, description="Success payload, null on error"
    )
    error: ErrorResponse | None = Field(
        None, description="Error information, null on success"
    )
    meta: MetaInfo = Field(..., description="Response metadata")


class ConfigValidationResult(BaseSchema):
    """Result payload for the validate command."""

    config_path: str = Field(..., min_length=1, description="Validated config path")
    mode: TranslationMode = Field(..., description="Extraction mode")
    source_language: LanguageCode = Field(..., description="Source language")
    target_language: LanguageCode = Field(..., description="Target language")
    filter_count: int = Field(..., ge=0, description="Filter patterns configured")
    output_rule_count: int = Field(..., ge=0, description="Output rules configured")
    credential_count: int = Field(..., ge=1, description="Credentials configured")
    prompt_message_count: int = Field(
        ..., ge=0, description="Messages in the prompt template"
    )

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: object) -> TranslationMode:
        if isinstance(value, TranslationMode):
            return value
        if isinstance(value, str):
            return TranslationMode(value)
        return value  # type: ignore[return-value]
