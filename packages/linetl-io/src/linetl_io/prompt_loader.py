"""Prompt template loading."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from pydantic import ValidationError

from linetl_core.ports.document import (
    DocumentError,
    DocumentErrorCode,
    DocumentErrorDetails,
    DocumentErrorInfo,
)
from linetl_schemas.llm import ChatMessage
from linetl_schemas.validation import validate_prompt_messages


async def load_prompt_template(path: str | Path) -> list[ChatMessage]:
    """Load a JSON prompt template.

    The file holds a list of ``{"role": ..., "content": ...}`` objects placed
    before every batch request.

    Args:
        path: Template path.

    Returns:
        list[ChatMessage]: Validated template messages.
    """
    return await asyncio.to_thread(_load_prompt_sync, Path(path))


def _load_prompt_sync(path: Path) -> list[ChatMessage]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise _prompt_error("Prompt template could not be read", path, exc) from exc
    except json.JSONDecodeError as exc:
        raise _prompt_error(
            "Prompt template is not valid JSON", path, exc, line_number=exc.lineno
        ) from exc
    if not isinstance(payload, list):
        raise DocumentError(
            DocumentErrorInfo(
                code=DocumentErrorCode.PROMPT_ERROR,
                message="Prompt template must be a JSON list of messages",
                details=DocumentErrorDetails(path=str(path)),
            )
        )
    try:
        return validate_prompt_messages(payload)
    except ValidationError as exc:
        raise _prompt_error("Prompt template message is invalid", path, exc) from exc


def _prompt_error(
    message: str, path: Path, exc: Exception, *, line_number: int | None = None
) -> DocumentError:
    return DocumentError(
        DocumentErrorInfo(
            code=DocumentErrorCode.PROMPT_ERROR,
            message=message,
            details=DocumentErrorDetails(
                path=str(path), line_number=line_number, reason=str(exc)
            ),
        )
    )
