"""Unit tests for reinjection and output assembly."""

import pytest

from linetl_core.ports.orchestrator import ConfigurationError
from linetl_core.records import LineRecord
from linetl_core.reinjection import Reinjector, assemble, escape_json_string
from linetl_schemas.primitives import EscapeMode, FailureReason


def _candidate(index: int, line: str, span: tuple[int, int]) -> LineRecord:
    record = LineRecord.from_line(index, line)
    record.matched = True
    record.captured = record.raw[span[0] : span[1]]
    record.span = span
    return record


def test_render_replaces_span_with_expression() -> None:
    """Only the matched span changes."""
    line = 'name: "こんにちは",'
    record = _candidate(0, line, (4, 13))
    reinjector = Reinjector(': "$trans"')
    assert reinjector.render(record, "你好") == 'name: "你好",'


def test_render_substitutes_every_placeholder() -> None:
    """Each $trans receives the translation."""
    record = _candidate(0, "Hello", (0, 5))
    assert Reinjector("$trans / $trans").render(record, "你好") == "你好 / 你好"


def test_text_mode_keeps_indentation() -> None:
    """Whitespace outside the span is template material."""
    record = _candidate(0, "    Hello  \n", (4, 9))
    record.translated = Reinjector().render(record, "你好")
    assert record.render() == "    你好  \n"


def test_json_escape_applies_before_substitution() -> None:
    """Quotes, backslashes and control characters are escaped."""
    record = _candidate(0, '"k": "v"', (5, 8))
    reinjector = Reinjector('"$trans"', escape=EscapeMode.JSON)
    assert reinjector.render(record, 'say "hi"\\') == '"k": "say \\"hi\\"\\\\"'


def test_escape_json_string_wraps_at_line_width() -> None:
    """An escaped newline is inserted every line_width characters."""
    assert escape_json_string("abcdefg", line_width=3) == "abc\\ndef\\ng"
    assert escape_json_string("abc", line_width=3) == "abc"
    assert escape_json_string("ab\ncdef", line_width=3) == "ab\\ncde\\nf"
    assert escape_json_string("ab\r\ncdef", line_width=3) == "ab\\r\\ncde\\nf"
    assert escape_json_string("a\tb\x01") == "a\\tb\\u0001"


def test_missing_placeholder_is_configuration_error() -> None:
    """An expression without $trans would drop the translation."""
    with pytest.raises(ConfigurationError):
        Reinjector(': "text"')


def test_apply_requires_aligned_segments() -> None:
    """Segments map one-to-one onto batch members."""
    records = [_candidate(0, "a", (0, 1)), _candidate(1, "b", (0, 1))]
    reinjector = Reinjector()
    with pytest.raises(ValueError):
        reinjector.apply(records, ["x"])
    reinjector.apply(records, ["x", "y"])
    assert [record.translated for record in records] == ["x", "y"]


def test_assemble_preserves_order_count_and_endings() -> None:
    """Untouched and failed lines pass through byte-identical."""
    lines = ["id: 5\r\n", "Hello\r\n", "World\n", "tail"]
    records = [LineRecord.from_line(index, line) for index, line in enumerate(lines)]
    records[1].translated = "你好"
    records[2].matched = True
    records[2].failure = FailureReason.PARSE_ERROR
    records[3].translated = "尾"
    output = assemble(reversed(records))
    assert output == ["id: 5\r\n", "你好\r\n", "World\n", "尾"]
