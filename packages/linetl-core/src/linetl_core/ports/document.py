"""Errors for document and prompt template I/O."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from linetl_schemas.base import BaseSchema
from linetl_schemas.responses import ErrorDetails, ErrorResponse


class DocumentErrorCode(StrEnum):
    """Categorized error codes for document I/O failures."""

    NOT_FOUND = "not_found"
    READ_ERROR = "read_error"
    DECODE_ERROR = "decode_error"
    WRITE_ERROR = "write_error"
    PROMPT_ERROR = "prompt_error"


class DocumentErrorDetails(BaseSchema):
    """Detailed document error context."""

    path: str | None = Field(None, description="File path")
    line_number: int | None = Field(None, ge=1, description="1-based line number")
    reason: str | None = Field(None, description="Underlying error message")


class DocumentErrorInfo(BaseSchema):
    """Structured document error data."""

    code: DocumentErrorCode = Field(..., description="Document error code")
    message: str = Field(..., min_length=1, description="Error message")
    details: DocumentErrorDetails | None = Field(None, description="Error details")

    def to_error_response(self) -> ErrorResponse:
        """Convert document error info to the standard error response schema.

        Returns:
            ErrorResponse: Standard response error payload.
        """
        details: ErrorDetails | None = None
        message = self.message
        if self.details is not None and self.details.path is not None:
            details = ErrorDetails(field="path", provided=self.details.path)
            location = self.details.path
            if self.details.line_number is not None:
                location = f"{location}:{self.details.line_number}"
            message = f"{location}: {message}"
        code_value = getattr(self.code, "value", self.code)
        return ErrorResponse(code=str(code_value), message=message, details=details)


class DocumentError(Exception):
    """Document error with structured details."""

    def __init__(self, info: DocumentErrorInfo) -> None:
        """Initialize the document error.

        Args:
            info: Structured document error information.
        """
        super().__init__(info.message)
        self.info = info
