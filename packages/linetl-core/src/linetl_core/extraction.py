"""Extraction of the translatable substring from candidate lines."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from linetl_core.ports.orchestrator import ConfigurationError
from linetl_core.records import LineRecord
from linetl_schemas.primitives import ExtractionWarningReason, TranslationMode
from linetl_schemas.results import ExtractionWarning


class ExtractionError(Exception):
    """A candidate line yielded no translatable text."""

    def __init__(self, reason: ExtractionWarningReason) -> None:
        """Initialize the extraction error.

        Args:
            reason: Why extraction failed.
        """
        super().__init__(f"extraction failed: {reason}")
        self.reason = reason


@dataclass(frozen=True, slots=True)
class Extraction:
    """Captured text and the slice of the line it replaces."""

    text: str
    span: tuple[int, int]


class Extractor:
    """Pulls translatable text out of candidate lines.

    In text mode the whole line (optionally trimmed) is translated. In replace
    mode the first match of the capture pattern is the span to rewrite and its
    first group is the text.
    """

    def __init__(
        self,
        mode: TranslationMode,
        capture_pattern: str | None = None,
        *,
        trim: bool = True,
    ) -> None:
        """Initialize the extractor.

        Args:
            mode: Extraction mode.
            capture_pattern: Pattern with at least one group (replace mode).
            trim: Strip surrounding whitespace in text mode.

        Raises:
            ConfigurationError: If the capture pattern is missing or invalid.
        """
        self._mode = TranslationMode(mode)
        self._trim = trim
        self._pattern: re.Pattern[str] | None = None
        if self._mode == TranslationMode.REPLACE:
            if not capture_pattern:
                raise ConfigurationError(
                    "capture_pattern is required for replace mode",
                    field="extraction.capture_pattern",
                )
            try:
                self._pattern = re.compile(capture_pattern)
            except re.error as exc:
                raise ConfigurationError(
                    f"Invalid capture pattern: {exc}",
                    field="extraction.capture_pattern",
                    provided=capture_pattern,
                ) from exc
            if self._pattern.groups < 1:
                raise ConfigurationError(
                    "capture_pattern must define a capturing group",
                    field="extraction.capture_pattern",
                    provided=capture_pattern,
                )

    @property
    def mode(self) -> TranslationMode:
        """Active extraction mode."""
        return self._mode

    def extract(self, text: str) -> Extraction:
        """Extract translatable text from one line.

        Args:
            text: Line text without its terminator.

        Returns:
            Extraction: Captured text and span to replace.

        Raises:
            ExtractionError: If nothing translatable was found.
        """
        if self._pattern is None:
            if not self._trim:
                start, end = 0, len(text)
            else:
                start = len(text) - len(text.lstrip())
                end = start + len(text.strip())
            captured = text[start:end]
        else:
            match = self._pattern.search(text)
            if match is None:
                raise ExtractionError(ExtractionWarningReason.NO_MATCH)
            captured = match.group(1) or ""
            start, end = match.span()
        if not captured.strip():
            raise ExtractionError(ExtractionWarningReason.EMPTY_TEXT)
        return Extraction(text=captured, span=(start, end))

    def apply(self, records: Iterable[LineRecord]) -> list[ExtractionWarning]:
        """Extract text for every candidate record, demoting failures.

        Args:
            records: Records already classified by the line filter.

        Returns:
            list[ExtractionWarning]: One warning per demoted record.
        """
        warnings: list[ExtractionWarning] = []
        for record in records:
            if not record.matched:
                continue
            try:
                extraction = self.extract(record.raw)
            except ExtractionError as exc:
                record.demote()
                warnings.append(
                    ExtractionWarning(line_index=record.index, reason=exc.reason)
                )
                continue
            record.captured = extraction.text
            record.span = extraction.span
        return warnings
