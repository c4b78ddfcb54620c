"""Base schema configuration for linetl Pydantic models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with strict validation defaults.

    Note: extra="ignore" lets config files carry keys for newer versions
    without failing validation. Required fields are still validated.
    """

    model_config = ConfigDict(
        extra="ignore",
        validate_assignment=True,
        validate_default=True,
        str_strip_whitespace=True,
        use_enum_values=True,
        strict=True,
    )


class VerbatimSchema(BaseSchema):
    """Schema whose string fields keep surrounding whitespace.

    Used for regex patterns, replacement templates and chat content where
    leading or trailing spaces are significant.
    """

    model_config = ConfigDict(str_strip_whitespace=False)
