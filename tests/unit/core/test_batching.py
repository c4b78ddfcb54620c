"""Unit tests for token estimation and batching."""

import pytest

from linetl_core.batching import MARKER_OVERHEAD_TOKENS, Batcher, estimate_tokens
from linetl_core.ports.orchestrator import ConfigurationError
from linetl_core.records import LineRecord


def _candidates(*texts: str) -> list[LineRecord]:
    records: list[LineRecord] = []
    for index, text in enumerate(texts):
        record = LineRecord(index=index, raw=text, matched=True, captured=text)
        records.append(record)
    return records


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("", MARKER_OVERHEAD_TOKENS),
        ("abcd", MARKER_OVERHEAD_TOKENS + 1),
        ("abcde", MARKER_OVERHEAD_TOKENS + 2),
        ("こんにちは", MARKER_OVERHEAD_TOKENS + 5),
        ("a你b", MARKER_OVERHEAD_TOKENS + 3),
    ],
)
def test_estimate_tokens(text: str, expected: int) -> None:
    """Non-ASCII counts per character, ASCII per four characters."""
    assert estimate_tokens(text) == expected


def test_batches_respect_budget_and_order() -> None:
    """Batches close before the running estimate exceeds the budget."""
    records = _candidates("abcd", "abcd", "abcd", "abcd")
    batches = Batcher(max_tokens=10).build(records)
    assert [batch.line_indices for batch in batches] == [[0, 1], [2, 3]]
    assert [batch.id for batch in batches] == [0, 1]
    for batch in batches:
        assert batch.estimated_tokens <= 10
        assert not batch.oversized


def test_oversized_item_gets_its_own_flagged_batch() -> None:
    """A line over the budget is sent alone rather than rejected."""
    records = _candidates("ab", "x" * 100, "cd")
    batches = Batcher(max_tokens=12).build(records)
    assert [batch.line_indices for batch in batches] == [[0], [1], [2]]
    assert [batch.oversized for batch in batches] == [False, True, False]
    assert batches[1].estimated_tokens > 12


def test_non_candidates_are_skipped() -> None:
    """Only matched records with captured text are batched."""
    records = _candidates("one", "two", "three")
    records[1].demote()
    batches = Batcher(max_tokens=100).build(records)
    assert [batch.line_indices for batch in batches] == [[0, 2]]


def test_every_candidate_belongs_to_exactly_one_batch() -> None:
    """Batching partitions the candidates."""
    records = _candidates(*[f"line {n} 你好" for n in range(25)])
    batches = Batcher(max_tokens=30).build(records)
    indices = [index for batch in batches for index in batch.line_indices]
    assert indices == list(range(25))


def test_empty_document_yields_no_batches() -> None:
    """Nothing to translate means nothing to send."""
    assert Batcher(max_tokens=10).build([]) == []


def test_non_positive_budget_is_configuration_error() -> None:
    """The token budget must be positive."""
    with pytest.raises(ConfigurationError):
        Batcher(max_tokens=0)
