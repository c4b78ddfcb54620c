"""Candidate line selection."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from linetl_core.ports.orchestrator import ConfigurationError
from linetl_core.records import LineRecord


class LineFilter:
    """Selects lines matching any of a set of patterns.

    An empty pattern set selects every line.
    """

    def __init__(self, patterns: Sequence[str]) -> None:
        """Compile the filter patterns.

        Args:
            patterns: Regex patterns combined with logical OR.

        Raises:
            ConfigurationError: If a pattern does not compile.
        """
        compiled: list[re.Pattern[str]] = []
        for pattern in patterns:
            try:
                compiled.append(re.compile(pattern))
            except re.error as exc:
                raise ConfigurationError(
                    f"Invalid filter pattern: {exc}",
                    field="extraction.filter_patterns",
                    provided=pattern,
                ) from exc
        self._patterns = compiled

    def matches(self, text: str) -> bool:
        """Return whether a line is a translation candidate.

        Args:
            text: Line text without its terminator.

        Returns:
            bool: True if no patterns are set or any pattern matches.
        """
        if not self._patterns:
            return True
        return any(pattern.search(text) for pattern in self._patterns)

    def apply(self, records: Iterable[LineRecord]) -> int:
        """Mark candidate records in place.

        Args:
            records: Records to classify.

        Returns:
            int: Number of records marked as candidates.
        """
        count = 0
        for record in records:
            record.matched = self.matches(record.raw)
            count += record.matched
        return count
