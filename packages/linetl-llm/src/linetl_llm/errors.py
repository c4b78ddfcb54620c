"""Classification of runtime exceptions into request error kinds."""

from __future__ import annotations

import httpx
import openai
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior

from linetl_core.ports.llm import (
    AuthError,
    LlmRequestError,
    QuotaError,
    RateLimitError,
    TransportError,
)

_QUOTA_MARKERS = ("insufficient_quota", "billing", "quota")


def classify_error(exc: Exception) -> LlmRequestError | None:
    """Map an exception raised during a chat call to a request error.

    Args:
        exc: Exception raised by pydantic-ai, openai or httpx.

    Returns:
        LlmRequestError | None: Classified error, or None when the exception
        is not a request failure.
    """
    if isinstance(exc, ModelHTTPError):
        return _from_status(exc.status_code, str(exc), exc.body, None)
    if isinstance(exc, openai.APIStatusError):
        return _from_status(
            exc.status_code,
            exc.message,
            exc.body,
            _retry_after(exc.response.headers.get("retry-after")),
        )
    if isinstance(exc, openai.APIConnectionError | httpx.TransportError):
        return TransportError(f"connection failed: {exc}")
    if isinstance(exc, TimeoutError):
        return TransportError("request timed out")
    if isinstance(exc, UnexpectedModelBehavior):
        return TransportError(f"unexpected model behavior: {exc}")
    return None


def _from_status(
    status: int, message: str, body: object, retry_after_s: float | None
) -> LlmRequestError:
    detail = f"{message} {body!s}".lower()
    if status in {401, 403}:
        return AuthError(message, status_code=status)
    if status == 402 or (
        status == 429 and any(marker in detail for marker in _QUOTA_MARKERS)
    ):
        return QuotaError(message, status_code=status)
    if status == 429:
        return RateLimitError(
            message, status_code=status, retry_after_s=retry_after_s
        )
    return TransportError(message, status_code=status)


def _retry_after(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None
