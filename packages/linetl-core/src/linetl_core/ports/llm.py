"""Protocol definitions and errors for LLM runtime adapters."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from linetl_schemas.llm import ChatRequest, ChatResponse, LlmEndpointTarget
from linetl_schemas.primitives import FailureKind


class LlmRequestError(Exception):
    """A failed chat request, classified for credential health handling."""

    kind: FailureKind = FailureKind.TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retry_after_s: float | None = None,
    ) -> None:
        """Initialize the request error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code when the endpoint answered.
            retry_after_s: Server-provided retry hint in seconds.
        """
        super().__init__(message)
        self.status_code = status_code
        self.retry_after_s = retry_after_s


class TransportError(LlmRequestError):
    """Network failure, timeout or server-side (5xx) error."""

    kind = FailureKind.TRANSPORT


class RateLimitError(LlmRequestError):
    """The endpoint throttled the credential (HTTP 429)."""

    kind = FailureKind.RATE_LIMIT


class AuthError(LlmRequestError):
    """The credential was rejected (HTTP 401/403)."""

    kind = FailureKind.AUTH


class QuotaError(LlmRequestError):
    """The credential has no remaining quota or billing."""

    kind = FailureKind.QUOTA


@runtime_checkable
class ChatRuntimeProtocol(Protocol):
    """Protocol for chat completion runtimes."""

    async def run_chat(
        self, request: ChatRequest, *, endpoint: LlmEndpointTarget
    ) -> ChatResponse:
        """Execute a chat request against one endpoint.

        Raises:
            LlmRequestError: Classified request failure.
        """
        raise NotImplementedError
