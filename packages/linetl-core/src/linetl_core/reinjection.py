"""Substitution of translated text back into the original line structure."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from linetl_core.ports.orchestrator import ConfigurationError
from linetl_core.records import LineRecord
from linetl_schemas.primitives import TRANSLATION_PLACEHOLDER, EscapeMode

_JSON_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def escape_json_string(text: str, line_width: int | None = None) -> str:
    """Escape text for embedding in a JSON string literal.

    Args:
        text: Text to escape.
        line_width: When set, an escaped newline is inserted after every
            ``line_width`` source characters since the last line break.

    Returns:
        str: Escaped text.
    """
    parts: list[str] = []
    count = 0
    for char in text:
        if line_width is not None and count == line_width:
            parts.append("\\n")
            count = 0
        escaped = _JSON_ESCAPES.get(char)
        if escaped is None and ord(char) < 0x20:
            escaped = f"\\u{ord(char):04x}"
        parts.append(escaped or char)
        count = 0 if char in "\n\r" else count + 1
    return "".join(parts)


class Reinjector:
    """Renders translated segments into their original line templates."""

    def __init__(
        self,
        replace_expression: str = TRANSLATION_PLACEHOLDER,
        *,
        escape: EscapeMode = EscapeMode.NONE,
        line_width: int | None = None,
    ) -> None:
        """Initialize the reinjector.

        Args:
            replace_expression: Template for the replaced span; every
                ``$trans`` receives the translated text.
            escape: Escaping applied to the translated text.
            line_width: Wrap width for JSON escaping.

        Raises:
            ConfigurationError: If the expression lacks the placeholder.
        """
        if TRANSLATION_PLACEHOLDER not in replace_expression:
            raise ConfigurationError(
                f"replace_expression must contain {TRANSLATION_PLACEHOLDER}",
                field="extraction.replace_expression",
                provided=replace_expression,
            )
        self._expression = replace_expression
        self._escape = EscapeMode(escape)
        self._line_width = line_width

    def render(self, record: LineRecord, segment: str) -> str:
        """Render one line with its translated segment.

        Args:
            record: Candidate record with a span.
            segment: Translated text for the record.

        Returns:
            str: Line text (without terminator) with the span rewritten.

        Raises:
            ValueError: If the record has no span.
        """
        if record.span is None:
            raise ValueError(f"line {record.index} has no extraction span")
        if self._escape == EscapeMode.JSON:
            segment = escape_json_string(segment, self._line_width)
        start, end = record.span
        replacement = self._expression.replace(TRANSLATION_PLACEHOLDER, segment)
        return f"{record.raw[:start]}{replacement}{record.raw[end:]}"

    def apply(self, members: Sequence[LineRecord], segments: Sequence[str]) -> None:
        """Store translations for a batch's members in place.

        Args:
            members: Batch members in order.
            segments: Translated segments aligned with ``members``.

        Raises:
            ValueError: If the sequences differ in length.
        """
        if len(members) != len(segments):
            raise ValueError("segments must align with batch members")
        for record, segment in zip(members, segments, strict=True):
            record.translated = self.render(record, segment)
            record.failure = None


def assemble(records: Iterable[LineRecord]) -> list[str]:
    """Produce output lines in document order.

    Args:
        records: Every record of the document.

    Returns:
        list[str]: Output lines with their original terminators.
    """
    return [record.render() for record in sorted(records, key=lambda r: r.index)]
