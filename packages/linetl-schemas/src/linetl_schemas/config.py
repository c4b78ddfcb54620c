"""Configuration schemas for linetl translation runs."""

from __future__ import annotations

import re
from urllib.parse import urlparse

from pydantic import Field, field_validator, model_validator

from linetl_schemas.base import BaseSchema, VerbatimSchema
from linetl_schemas.primitives import (
    TRANSLATION_PLACEHOLDER,
    EscapeMode,
    LanguageCode,
    LogSinkType,
    TranslationMode,
)

# Captures the text after each "(n)" marker the request numbering asks for
DEFAULT_OUTPUT_RULE_PATTERN = r"(?m)^[ \t]*\(\d+\)[ \t]*(.*?)[ \t]*$"


def _compile_pattern(value: str) -> re.Pattern[str]:
    try:
        return re.compile(value)
    except re.error as exc:
        raise ValueError(f"invalid regex {value!r}: {exc}") from exc


class LogSinkConfig(BaseSchema):
    """Configuration for a single log sink."""

    type: LogSinkType = Field(..., description="Log sink type (console|file|noop)")

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: object) -> LogSinkType:
        if isinstance(value, LogSinkType):
            return value
        if isinstance(value, str):
            return LogSinkType(value)
        return value  # type: ignore[return-value]


class LoggingConfig(BaseSchema):
    """Logging configuration for translation runs and CLI commands."""

    sinks: list[LogSinkConfig] = Field(
        default_factory=lambda: [LogSinkConfig(type=LogSinkType.CONSOLE)],
        min_length=1,
        description="Log sinks to enable",
    )
    logs_dir: str = Field(
        "logs", min_length=1, description="Directory for JSONL log files"
    )

    @model_validator(mode="after")
    def validate_sink_types(self) -> LoggingConfig:
        """Ensure log sink types are unique.

        Returns:
            LoggingConfig: Validated logging configuration.

        Raises:
            ValueError: If sink types are duplicated.
        """
        sink_types = [sink.type for sink in self.sinks]
        if len(set(sink_types)) != len(sink_types):
            raise ValueError("log sinks must not contain duplicates")
        return self


class LanguageConfig(BaseSchema):
    """Source and target language for a run."""

    source: LanguageCode = Field(..., description="Source language code")
    target: LanguageCode = Field(..., description="Target language code")

    @model_validator(mode="after")
    def validate_language_pair(self) -> LanguageConfig:
        """Ensure the target differs from the source.

        Returns:
            LanguageConfig: Validated language configuration.

        Raises:
            ValueError: If source and target are identical.
        """
        if self.source == self.target:
            raise ValueError("target language must differ from source language")
        return self


class ExtractionConfig(VerbatimSchema):
    """Line selection, extraction and reinjection settings."""

    mode: TranslationMode = Field(
        TranslationMode.TEXT, description="Extraction mode (text|replace)"
    )
    filter_patterns: list[str] = Field(
        default_factory=list,
        description="Candidate line patterns (OR); empty selects every line",
    )
    capture_pattern: str | None = Field(
        None, description="Pattern whose group 1 holds the text (replace mode)"
    )
    replace_expression: str = Field(
        TRANSLATION_PLACEHOLDER,
        description="Template substituted for the matched span; $trans is the text",
    )
    trim: bool = Field(
        True, description="Strip surrounding whitespace from text-mode lines"
    )
    escape: EscapeMode = Field(
        EscapeMode.NONE, description="Escaping applied to translated text"
    )
    line_width: int | None = Field(
        None, gt=0, description="Insert an escaped newline every N characters"
    )

    @field_validator("mode", mode="before")
    @classmethod
    def _coerce_mode(cls, value: object) -> TranslationMode:
        if isinstance(value, TranslationMode):
            return value
        if isinstance(value, str):
            return TranslationMode(value)
        return value  # type: ignore[return-value]

    @field_validator("escape", mode="before")
    @classmethod
    def _coerce_escape(cls, value: object) -> EscapeMode:
        if isinstance(value, EscapeMode):
            return value
        if isinstance(value, str):
            return EscapeMode(value)
        return value  # type: ignore[return-value]

    @field_validator("filter_patterns")
    @classmethod
    def validate_filter_patterns(cls, value: list[str]) -> list[str]:
        """Ensure every filter pattern compiles.

        Args:
            value: Raw filter patterns.

        Returns:
            list[str]: The unchanged patterns.
        """
        for pattern in value:
            _compile_pattern(pattern)
        return value

    @model_validator(mode="after")
    def validate_mode_settings(self) -> ExtractionConfig:
        """Validate capture pattern and replace expression for the mode.

        Returns:
            ExtractionConfig: Validated extraction configuration.

        Raises:
            ValueError: If mode-specific settings are missing or conflicting.
        """
        if TRANSLATION_PLACEHOLDER not in self.replace_expression:
            raise ValueError(
                f"replace_expression must contain {TRANSLATION_PLACEHOLDER}"
            )
        if self.mode == TranslationMode.REPLACE:
            if not self.capture_pattern:
                raise ValueError("capture_pattern is required for replace mode")
            compiled = _compile_pattern(self.capture_pattern)
            if compiled.groups < 1:
                raise ValueError("capture_pattern must define a capturing group")
        elif self.capture_pattern is not None:
            raise ValueError("capture_pattern is only valid for replace mode")
        if self.line_width is not None and self.escape != EscapeMode.JSON:
            raise ValueError("line_width requires escape = 'json'")
        return self


class OutputRuleUsage(VerbatimSchema):
    """Action taken by an output rule: replace matches or capture a group."""

    replace: str | None = Field(None, description="Replacement for every match")
    capture: int | None = Field(None, ge=0, description="Group index to capture")

    @model_validator(mode="after")
    def validate_single_usage(self) -> OutputRuleUsage:
        """Ensure exactly one usage is configured.

        Returns:
            OutputRuleUsage: Validated usage.

        Raises:
            ValueError: If neither or both usages are set.
        """
        if (self.replace is None) == (self.capture is None):
            raise ValueError("output rule usage needs exactly one of replace/capture")
        return self


class OutputRuleConfig(VerbatimSchema):
    """Ordered rule applied to raw model output."""

    pattern: str = Field(..., min_length=1, description="Regex applied to output")
    usage: OutputRuleUsage = Field(..., description="Replace or capture action")

    @model_validator(mode="after")
    def validate_pattern(self) -> OutputRuleConfig:
        """Compile the pattern and check the captured group exists.

        Returns:
            OutputRuleConfig: Validated rule.

        Raises:
            ValueError: If the group index exceeds the pattern's groups.
        """
        compiled = _compile_pattern(self.pattern)
        capture = self.usage.capture
        if capture is not None and capture > compiled.groups:
            raise ValueError(
                f"capture group {capture} exceeds {compiled.groups} group(s) "
                f"in {self.pattern!r}"
            )
        return self


class CredentialConfig(BaseSchema):
    """A single API credential for an OpenAI-compatible endpoint."""

    name: str = Field(..., min_length=1, description="Credential label")
    base_url: str = Field(
        "https://api.openai.com/v1",
        min_length=1,
        description="OpenAI-compatible base URL",
    )
    api_key: str | None = Field(
        None, min_length=1, description="Inline API key", repr=False
    )
    api_key_env: str | None = Field(
        None, min_length=1, description="Environment variable holding the key"
    )
    organization: str | None = Field(
        None, min_length=1, description="Optional organization header value"
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Ensure base URL uses http/https with a host.

        Args:
            value: Raw base URL string.

        Returns:
            str: Validated base URL.

        Raises:
            ValueError: If the URL is missing scheme/host.
        """
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "base_url must be an http/https URL with host "
                "(for localhost include http://)"
            )
        if parsed.path in {"", "/"}:
            return f"{value.rstrip('/')}/v1"
        return value

    @model_validator(mode="after")
    def validate_key_source(self) -> CredentialConfig:
        """Ensure exactly one key source is configured.

        Returns:
            CredentialConfig: Validated credential.

        Raises:
            ValueError: If neither or both of api_key/api_key_env are set.
        """
        if (self.api_key is None) == (self.api_key_env is None):
            raise ValueError(
                f"credential {self.name!r} needs exactly one of api_key/api_key_env"
            )
        return self


class DispatchConfig(BaseSchema):
    """Concurrency, prompt and credential settings for dispatch."""

    max_concurrent: int = Field(
        8, ge=1, description="Run-wide ceiling on in-flight requests"
    )
    prompt_path: str | None = Field(
        None, min_length=1, description="JSON prompt template path"
    )
    request_timeout_s: float = Field(
        180.0, gt=0, description="Per-request timeout in seconds"
    )
    drain_timeout_s: float = Field(
        10.0, ge=0, description="Grace period for in-flight requests on cancel"
    )
    credentials: list[CredentialConfig] = Field(
        ..., min_length=1, description="Credential pool entries"
    )

    @model_validator(mode="after")
    def validate_credentials(self) -> DispatchConfig:
        """Ensure credential names are unique.

        Returns:
            DispatchConfig: Validated dispatch configuration.

        Raises:
            ValueError: If credential names are duplicated.
        """
        names = [credential.name for credential in self.credentials]
        if len(set(names)) != len(names):
            raise ValueError("credentials must have unique name values")
        return self


class ModelSettings(BaseSchema):
    """Model settings for translation requests."""

    model_id: str = Field("gpt-4o-mini", min_length=1, description="Model identifier")
    temperature: float = Field(0.2, ge=0, le=2, description="Sampling temperature")
    max_output_tokens: int | None = Field(
        None, ge=1, description="Maximum tokens for responses"
    )
    top_p: float = Field(1.0, ge=0, le=1, description="Top-p sampling")
    presence_penalty: float = Field(0.0, ge=-2, le=2, description="Presence penalty")
    frequency_penalty: float = Field(0.0, ge=-2, le=2, description="Frequency penalty")


class BatchingConfig(BaseSchema):
    """Token budget for batches."""

    max_tokens: int = Field(
        1024, ge=1, description="Estimated token budget per request"
    )


class RetryConfig(BaseSchema):
    """Retry policy for batch requests."""

    max_attempts: int = Field(4, ge=1, description="Attempts per batch")
    backoff_s: float = Field(1.0, gt=0, description="Initial backoff in seconds")
    multiplier: float = Field(2.0, ge=1, description="Backoff growth factor")
    max_backoff_s: float = Field(
        30.0, gt=0, description="Maximum backoff delay in seconds"
    )

    @model_validator(mode="after")
    def validate_backoff_bounds(self) -> RetryConfig:
        """Ensure the backoff ceiling is not below the initial delay.

        Returns:
            RetryConfig: Validated retry configuration.

        Raises:
            ValueError: If max_backoff_s is smaller than backoff_s.
        """
        if self.max_backoff_s < self.backoff_s:
            raise ValueError("max_backoff_s must be >= backoff_s")
        return self


class CooldownConfig(BaseSchema):
    """Cooldown durations applied to credentials after failures."""

    rate_limit_s: float = Field(
        20.0, ge=0, description="Cooldown after a rate-limit response"
    )
    transient_s: float = Field(
        2.0, ge=0, description="Cooldown after a transport failure"
    )


class OutputConfig(BaseSchema):
    """Output document settings."""

    suffix: str = Field(
        ".translated",
        min_length=1,
        description="Inserted before the extension of the default output path",
    )


class RunConfig(BaseSchema):
    """Top-level configuration for a translation run."""

    file: str | None = Field(None, min_length=1, description="Input document path")
    languages: LanguageConfig = Field(..., description="Language pair")
    extraction: ExtractionConfig = Field(
        default_factory=ExtractionConfig, description="Extraction settings"
    )
    output_rules: list[OutputRuleConfig] = Field(
        default_factory=lambda: [
            OutputRuleConfig(
                pattern=DEFAULT_OUTPUT_RULE_PATTERN,
                usage=OutputRuleUsage(capture=1),
            )
        ],
        description="Ordered response transformation rules",
    )
    batching: BatchingConfig = Field(
        default_factory=BatchingConfig, description="Batching settings"
    )
    dispatch: DispatchConfig = Field(..., description="Dispatch settings")
    model: ModelSettings = Field(
        default_factory=ModelSettings, description="Model settings"
    )
    retry: RetryConfig = Field(default_factory=RetryConfig, description="Retry policy")
    cooldown: CooldownConfig = Field(
        default_factory=CooldownConfig, description="Credential cooldowns"
    )
    output: OutputConfig = Field(
        default_factory=OutputConfig, description="Output settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
