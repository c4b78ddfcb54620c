"""Schemas for LLM runtime operations."""

from __future__ import annotations

from pydantic import Field, field_validator

from linetl_schemas.base import BaseSchema, VerbatimSchema
from linetl_schemas.config import ModelSettings
from linetl_schemas.primitives import ChatRole


class ChatMessage(VerbatimSchema):
    """A single chat message."""

    role: ChatRole = Field(..., description="Message role")
    content: str = Field(..., min_length=1, description="Message text")

    @field_validator("role", mode="before")
    @classmethod
    def _coerce_role(cls, value: object) -> ChatRole:
        if isinstance(value, ChatRole):
            return value
        if isinstance(value, str):
            return ChatRole(value)
        return value  # type: ignore[return-value]


class LlmEndpointTarget(BaseSchema):
    """Resolved endpoint settings for one runtime call."""

    credential: str = Field(..., min_length=1, description="Credential name")
    base_url: str = Field(..., min_length=1, description="Endpoint base URL")
    api_key: str = Field(..., min_length=1, description="API key", repr=False)
    organization: str | None = Field(None, description="Organization header")
    timeout_s: float = Field(..., gt=0, description="Request timeout in seconds")


class ChatRequest(BaseSchema):
    """Chat completion request for one batch."""

    messages: list[ChatMessage] = Field(
        ..., min_length=1, description="Ordered chat messages"
    )
    model: ModelSettings = Field(..., description="Model settings")


class ChatResponse(VerbatimSchema):
    """Raw chat completion output."""

    model_id: str = Field(..., min_length=1, description="Model identifier")
    output_text: str = Field(..., description="Model output text")
