"""Ordered regex rules that turn raw model output into per-line segments."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from linetl_core.ports.orchestrator import ConfigurationError
from linetl_schemas.config import OutputRuleConfig


@dataclass(frozen=True, slots=True)
class ReplaceRule:
    """Substitute every match; an empty replacement strips it."""

    pattern: re.Pattern[str]
    replacement: str


@dataclass(frozen=True, slots=True)
class CaptureRule:
    """Split text into the given group of every match."""

    pattern: re.Pattern[str]
    group: int


type OutputRule = ReplaceRule | CaptureRule


class ParseError(Exception):
    """Response segments do not line up with the batch members."""

    def __init__(self, expected: int, segments: list[str]) -> None:
        """Initialize the parse error.

        Args:
            expected: Batch member count.
            segments: Segments actually extracted.
        """
        super().__init__(
            f"expected {expected} segment(s), response yielded {len(segments)}"
        )
        self.expected = expected
        self.segments = segments

    @property
    def received(self) -> int:
        """Number of segments extracted."""
        return len(self.segments)


def build_output_rules(configs: Iterable[OutputRuleConfig]) -> list[OutputRule]:
    """Compile configured output rules.

    Args:
        configs: Rule configurations in application order.

    Returns:
        list[OutputRule]: Compiled rules.

    Raises:
        ConfigurationError: If a pattern does not compile or a group is missing.
    """
    rules: list[OutputRule] = []
    for position, config in enumerate(configs):
        field = f"output_rules[{position}].pattern"
        try:
            pattern = re.compile(config.pattern)
        except re.error as exc:
            raise ConfigurationError(
                f"Invalid output rule pattern: {exc}",
                field=field,
                provided=config.pattern,
            ) from exc
        capture = config.usage.capture
        if capture is None:
            rules.append(ReplaceRule(pattern, config.usage.replace or ""))
            continue
        if capture > pattern.groups:
            raise ConfigurationError(
                f"Capture group {capture} not defined by pattern",
                field=field,
                provided=config.pattern,
            )
        rules.append(CaptureRule(pattern, capture))
    return rules


class ResponseTransformer:
    """Applies output rules in order to produce translated segments.

    Until the first capture rule the response is a single text. A capture rule
    turns it into a list of segments; later rules then apply to each segment,
    with further captures flattening their results.
    """

    def __init__(self, rules: Sequence[OutputRule]) -> None:
        """Initialize the transformer.

        Args:
            rules: Compiled rules in application order.
        """
        self._rules = list(rules)

    def segments(self, text: str) -> list[str]:
        """Extract stripped segments from a response.

        Args:
            text: Raw model output.

        Returns:
            list[str]: Segments in response order.
        """
        texts = [text]
        captured = False
        for rule in self._rules:
            match rule:
                case ReplaceRule(pattern=pattern, replacement=replacement):
                    texts = [pattern.sub(replacement, item) for item in texts]
                case CaptureRule(pattern=pattern, group=group):
                    texts = [
                        found.group(group) or ""
                        for item in texts
                        for found in pattern.finditer(item)
                    ]
                    captured = True
        if not captured:
            return [line.strip() for line in texts[0].splitlines() if line.strip()]
        return [item.strip() for item in texts]

    def transform(self, text: str, expected: int) -> list[str]:
        """Extract exactly ``expected`` segments from a response.

        Args:
            text: Raw model output.
            expected: Number of lines in the batch.

        Returns:
            list[str]: One segment per batch member.

        Raises:
            ParseError: If the segment count differs from ``expected``.
        """
        segments = self.segments(text)
        if len(segments) != expected:
            raise ParseError(expected, segments)
        return segments
