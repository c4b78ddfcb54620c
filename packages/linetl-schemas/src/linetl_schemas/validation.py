"""Validation entrypoints for config and prompt payloads."""

from __future__ import annotations

from linetl_schemas.config import RunConfig
from linetl_schemas.llm import ChatMessage
from linetl_schemas.primitives import JsonValue


def validate_run_config(payload: dict[str, JsonValue]) -> RunConfig:
    """Validate run configuration payload.

    Args:
        payload: Raw run configuration payload.

    Returns:
        RunConfig: Validated run configuration.
    """
    return RunConfig.model_validate(payload, strict=False)


def validate_prompt_messages(payload: list[JsonValue]) -> list[ChatMessage]:
    """Validate a prompt template payload.

    Args:
        payload: Raw list of ``{role, content}`` objects.

    Returns:
        list[ChatMessage]: Validated chat messages.
    """
    return [ChatMessage.model_validate(item, strict=False) for item in payload]
