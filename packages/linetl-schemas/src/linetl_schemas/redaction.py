"""Secret redaction for logs and summaries."""

from __future__ import annotations

import re
from collections.abc import Iterable

from pydantic import Field

from linetl_schemas.base import BaseSchema
from linetl_schemas.primitives import JsonValue

REDACTED = "[REDACTED]"


class SecretPattern(BaseSchema):
    """Regex pattern for detecting secrets."""

    pattern: str = Field(..., min_length=1, description="Regex pattern string")
    label: str = Field(..., min_length=1, description="Human-readable description")


# Default patterns for common secret formats
DEFAULT_PATTERNS = [
    SecretPattern(
        pattern=r"sk-[a-zA-Z0-9_\-]{20,}",
        label="OpenAI-style API key (sk-*)",
    ),
    SecretPattern(
        pattern=r"Bearer\s+[a-zA-Z0-9_\-\.]{20,}",
        label="Bearer token",
    ),
    SecretPattern(
        pattern=r"(?:api[_-]?key|apikey)\s*[=:]\s*['\"]?[a-zA-Z0-9_\-]{20,}['\"]?",
        label="API key assignment",
    ),
]


class Redactor:
    """Redacts secrets from strings and JSON-like payloads."""

    def __init__(
        self, patterns: Iterable[SecretPattern], literal_values: Iterable[str]
    ) -> None:
        """Initialize with patterns and literal secret values.

        Args:
            patterns: Secret patterns to scrub.
            literal_values: Exact values to scrub, such as resolved API keys.
        """
        self._patterns = [re.compile(item.pattern) for item in patterns]
        # Longest first so a key containing another key is fully replaced
        self._literals = sorted(
            {value for value in literal_values if value}, key=len, reverse=True
        )

    def redact(self, value: str) -> str:
        """Redact secrets from a string.

        Args:
            value: String that may contain secrets.

        Returns:
            String with secrets replaced by [REDACTED].
        """
        result = value
        for literal in self._literals:
            result = result.replace(literal, REDACTED)
        for pattern in self._patterns:
            result = pattern.sub(REDACTED, result)
        return result

    def redact_value(self, value: JsonValue) -> JsonValue:
        """Deep-walk a JSON-like value and redact every string.

        Args:
            value: JSON-like value that may contain secrets.

        Returns:
            A new value with secrets redacted.
        """
        if isinstance(value, str):
            return self.redact(value)
        if isinstance(value, dict):
            return {key: self.redact_value(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self.redact_value(item) for item in value]
        return value


def build_redactor(
    secrets: Iterable[str], patterns: Iterable[SecretPattern] | None = None
) -> Redactor:
    """Build a Redactor for resolved secrets.

    Args:
        secrets: Literal secret values (e.g. API keys from the credential pool).
        patterns: Optional patterns, defaults to DEFAULT_PATTERNS.

    Returns:
        Redactor instance ready to use.
    """
    return Redactor(
        patterns=DEFAULT_PATTERNS if patterns is None else patterns,
        literal_values=secrets,
    )
