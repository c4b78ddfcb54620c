"""linetl-core: Line-by-line translation pipeline logic."""

from linetl_core.batching import Batcher, estimate_tokens
from linetl_core.connection import validate_connections
from linetl_core.credentials import (
    Credential,
    CredentialPool,
    PoolExhaustedError,
    resolve_credentials,
)
from linetl_core.dispatcher import Dispatcher
from linetl_core.extraction import Extraction, ExtractionError, Extractor
from linetl_core.filtering import LineFilter
from linetl_core.pipeline import PipelineResult, PreparedDocument, TranslationPipeline
from linetl_core.ports import (
    AuthError,
    ChatRuntimeProtocol,
    ConfigurationError,
    DocumentError,
    DocumentErrorCode,
    DocumentErrorInfo,
    LlmRequestError,
    LogSinkProtocol,
    QuotaError,
    RateLimitError,
    TranslationError,
    TranslationErrorCode,
    TranslationErrorInfo,
    TransportError,
)
from linetl_core.prompts import PromptBuilder, format_numbered_lines
from linetl_core.records import Batch, BatchOutcome, LineRecord
from linetl_core.reinjection import Reinjector, assemble, escape_json_string
from linetl_core.retry import RetryPolicy
from linetl_core.transform import (
    CaptureRule,
    ParseError,
    ReplaceRule,
    ResponseTransformer,
    build_output_rules,
)
from linetl_core.version import VERSION

__version__ = str(VERSION)

__all__ = [
    "VERSION",
    "AuthError",
    "Batch",
    "BatchOutcome",
    "Batcher",
    "CaptureRule",
    "ChatRuntimeProtocol",
    "ConfigurationError",
    "Credential",
    "CredentialPool",
    "Dispatcher",
    "DocumentError",
    "DocumentErrorCode",
    "DocumentErrorInfo",
    "Extraction",
    "ExtractionError",
    "Extractor",
    "LineFilter",
    "LineRecord",
    "LlmRequestError",
    "LogSinkProtocol",
    "ParseError",
    "PipelineResult",
    "PoolExhaustedError",
    "PreparedDocument",
    "PromptBuilder",
    "QuotaError",
    "RateLimitError",
    "Reinjector",
    "ReplaceRule",
    "ResponseTransformer",
    "RetryPolicy",
    "TranslationError",
    "TranslationErrorCode",
    "TranslationErrorInfo",
    "TranslationPipeline",
    "TransportError",
    "assemble",
    "build_output_rules",
    "escape_json_string",
    "estimate_tokens",
    "format_numbered_lines",
    "resolve_credentials",
    "validate_connections",
]
