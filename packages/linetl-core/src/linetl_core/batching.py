"""Token-budgeted batching of candidate lines."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable

from linetl_core.ports.orchestrator import ConfigurationError
from linetl_core.records import Batch, LineRecord

# Cost of the "(n) " marker and trailing newline added per line
MARKER_OVERHEAD_TOKENS = 4
ASCII_CHARS_PER_TOKEN = 4

_ASCII_RUN = re.compile(r"[\x00-\x7f]+")


def estimate_tokens(text: str) -> int:
    """Estimate the request tokens one line contributes.

    Each non-ASCII code point counts as one token and each run of ASCII
    characters as one token per four characters, plus the marker overhead.

    Args:
        text: Captured line text.

    Returns:
        int: Estimated token count.
    """
    ascii_chars = 0
    tokens = MARKER_OVERHEAD_TOKENS
    for run in _ASCII_RUN.finditer(text):
        length = run.end() - run.start()
        ascii_chars += length
        tokens += math.ceil(length / ASCII_CHARS_PER_TOKEN)
    return tokens + len(text) - ascii_chars


class Batcher:
    """Groups candidate records into ordered batches under a token budget."""

    def __init__(self, max_tokens: int) -> None:
        """Initialize the batcher.

        Args:
            max_tokens: Estimated token budget per batch.

        Raises:
            ConfigurationError: If the budget is not positive.
        """
        if max_tokens < 1:
            raise ConfigurationError(
                "max_tokens must be positive",
                field="batching.max_tokens",
                provided=str(max_tokens),
            )
        self._max_tokens = max_tokens

    def build(self, records: Iterable[LineRecord]) -> list[Batch]:
        """Batch candidate records in document order.

        A record whose own estimate exceeds the budget is placed alone in a
        batch flagged as oversized.

        Args:
            records: Records with extraction applied; non-candidates are skipped.

        Returns:
            list[Batch]: Batches with sequential ids.
        """
        batches: list[Batch] = []
        members: list[LineRecord] = []
        running = 0

        def close() -> None:
            nonlocal members, running
            if members:
                batches.append(
                    Batch(id=len(batches), members=members, estimated_tokens=running)
                )
            members, running = [], 0

        for record in records:
            if not record.matched or record.captured is None:
                continue
            cost = estimate_tokens(record.captured)
            if cost > self._max_tokens:
                close()
                batches.append(
                    Batch(
                        id=len(batches),
                        members=[record],
                        estimated_tokens=cost,
                        oversized=True,
                    )
                )
                continue
            if running + cost > self._max_tokens:
                close()
            members.append(record)
            running += cost
        close()
        return batches
