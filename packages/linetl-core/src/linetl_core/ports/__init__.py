"""Ports: protocols and structured errors shared across linetl packages."""

from linetl_core.ports.document import (
    DocumentError,
    DocumentErrorCode,
    DocumentErrorDetails,
    DocumentErrorInfo,
)
from linetl_core.ports.llm import (
    AuthError,
    ChatRuntimeProtocol,
    LlmRequestError,
    QuotaError,
    RateLimitError,
    TransportError,
)
from linetl_core.ports.orchestrator import (
    ConfigurationError,
    LogSinkProtocol,
    ProgressCallback,
    TranslationError,
    TranslationErrorCode,
    TranslationErrorDetails,
    TranslationErrorInfo,
)

__all__ = [
    "AuthError",
    "ChatRuntimeProtocol",
    "ConfigurationError",
    "DocumentError",
    "DocumentErrorCode",
    "DocumentErrorDetails",
    "DocumentErrorInfo",
    "LlmRequestError",
    "LogSinkProtocol",
    "ProgressCallback",
    "QuotaError",
    "RateLimitError",
    "TranslationError",
    "TranslationErrorCode",
    "TranslationErrorDetails",
    "TranslationErrorInfo",
    "TransportError",
]
