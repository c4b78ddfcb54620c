"""Unit tests for the translation pipeline."""

from __future__ import annotations

import asyncio
import re
from uuid import uuid4

import pytest

from linetl_core.credentials import CredentialPool, resolve_credentials
from linetl_core.pipeline import TranslationPipeline
from linetl_core.ports.llm import AuthError, RateLimitError
from linetl_core.ports.orchestrator import LogSinkProtocol
from linetl_schemas.config import RunConfig
from linetl_schemas.llm import ChatRequest, ChatResponse, LlmEndpointTarget
from linetl_schemas.logs import LogEntry
from linetl_schemas.primitives import (
    ExtractionWarningReason,
    FailureReason,
    JsonValue,
    RunStatus,
)
from linetl_schemas.results import BatchReport
from linetl_schemas.validation import validate_run_config

DOCUMENT = [
    "{\n",
    '  name: "こんにちは",\n',
    "  id: 5,\n",
    '  bye: "さようなら"\n',
    "}",
]

TRANSLATIONS = {"こんにちは": "你好", "さようなら": "再见"}

_NUMBERED = re.compile(r"^\((\d+)\) (.*)$", re.MULTILINE)


class _StubLogSink(LogSinkProtocol):
    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    async def emit_log(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def events(self) -> list[str]:
        return [entry.event for entry in self.entries]


class _DictionaryRuntime:
    """Translates numbered lines from a fixed dictionary."""

    def __init__(
        self,
        *,
        rate_limited: set[str] | None = None,
        revoked: bool = False,
        drop_last: bool = False,
        broken: set[str] | None = None,
    ) -> None:
        self._rate_limited = rate_limited or set()
        self._revoked = revoked
        self._drop_last = drop_last
        self._broken = broken or set()
        self.calls = 0

    async def run_chat(
        self, request: ChatRequest, *, endpoint: LlmEndpointTarget
    ) -> ChatResponse:
        self.calls += 1
        await asyncio.sleep(0)
        if self._revoked:
            raise AuthError("invalid api key", status_code=401)
        numbered = _NUMBERED.findall(request.messages[-1].content)
        if any(text in self._rate_limited for _, text in numbered):
            raise RateLimitError("too many requests", status_code=429)
        if any(text in self._broken for _, text in numbered):
            raise RuntimeError("unexpected completion payload")
        if self._drop_last:
            numbered = numbered[:-1]
        body = "".join(
            f"({number}) {TRANSLATIONS.get(text, text)}\n" for number, text in numbered
        )
        return ChatResponse(
            model_id=request.model.model_id, output_text=f"Sure!\n{body}"
        )


async def _no_sleep(delay: float) -> None:
    return None


def _pipeline(
    config: RunConfig,
    runtime: _DictionaryRuntime,
    log_sink: LogSinkProtocol | None = None,
) -> TranslationPipeline:
    pool = CredentialPool.from_config(
        resolve_credentials(config.dispatch.credentials, {}), config.cooldown
    )
    return TranslationPipeline(
        config, runtime=runtime, pool=pool, log_sink=log_sink, sleep=_no_sleep
    )


def _one_batch_per_line(config_payload: dict[str, JsonValue]) -> RunConfig:
    config_payload["batching"] = {"max_tokens": 10}
    return validate_run_config(config_payload)


@pytest.mark.asyncio
async def test_round_trip_rewrites_only_captured_spans(run_config: RunConfig) -> None:
    """Translated spans are reinjected and every other byte is preserved."""
    sink = _StubLogSink()
    pipeline = _pipeline(run_config, _DictionaryRuntime(), sink)
    result = await pipeline.run(DOCUMENT, input_path="in.txt", output_path="out.txt")

    assert result.lines == [
        "{\n",
        '  name: "你好",\n',
        "  id: 5,\n",
        '  bye: "再见"\n',
        "}",
    ]
    summary = result.summary
    assert summary.status == RunStatus.COMPLETED
    assert summary.total_lines == 5
    assert summary.candidate_lines == 2
    assert summary.translated_lines == 2
    assert summary.failed_line_indices == []
    assert summary.batch_count == 1
    assert summary.input_path == "in.txt"
    events = sink.events()
    assert events[0] == "run_started"
    assert events[-1] == "run_completed"
    assert "batch_succeeded" in events


def test_prepare_skips_non_candidates(run_config: RunConfig) -> None:
    """Only filtered lines become batch members."""
    prepared = _pipeline(run_config, _DictionaryRuntime()).prepare(DOCUMENT)
    assert prepared.candidate_count == 2
    assert [batch.line_indices for batch in prepared.batches] == [[1, 3]]
    assert prepared.records[1].captured == "こんにちは"


@pytest.mark.asyncio
async def test_run_accepts_prepared_document(
    run_config: RunConfig, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A document planned up front is translated without planning it again."""
    pipeline = _pipeline(run_config, _DictionaryRuntime())
    prepared = pipeline.prepare(DOCUMENT)

    def _unexpected_prepare(lines: list[str]) -> None:
        raise AssertionError("document prepared twice")

    monkeypatch.setattr(pipeline, "prepare", _unexpected_prepare)
    result = await pipeline.run(prepared)

    assert result.records is prepared.records
    assert result.lines[1] == '  name: "你好",\n'
    assert result.summary.batch_count == len(prepared.batches)


@pytest.mark.asyncio
async def test_failed_batch_leaves_its_lines_untouched(
    config_payload: dict[str, JsonValue],
) -> None:
    """A batch that exhausts its retries does not stop the others."""
    config = _one_batch_per_line(config_payload)
    runtime = _DictionaryRuntime(rate_limited={"さようなら"})
    result = await _pipeline(config, runtime).run(DOCUMENT)

    assert result.lines[1] == '  name: "你好",\n'
    assert result.lines[3] == DOCUMENT[3]
    summary = result.summary
    assert summary.status == RunStatus.PARTIAL
    assert summary.failed_line_indices == [3]
    assert summary.failed_batch_count == 1
    failed = [batch for batch in summary.batches if batch.failure_reason]
    assert failed[0].failure_reason == FailureReason.RETRIES_EXHAUSTED
    assert failed[0].attempts == 3
    assert result.records[3].failure == FailureReason.RETRIES_EXHAUSTED


@pytest.mark.asyncio
async def test_unexpected_runtime_error_keeps_translated_batches(
    config_payload: dict[str, JsonValue],
) -> None:
    """A runtime crash in one batch still emits the other batches."""
    config = _one_batch_per_line(config_payload)
    sink = _StubLogSink()
    runtime = _DictionaryRuntime(broken={"さようなら"})
    result = await _pipeline(config, runtime, sink).run(DOCUMENT)

    assert result.lines[1] == '  name: "你好",\n'
    assert result.lines[3] == DOCUMENT[3]
    summary = result.summary
    assert summary.status == RunStatus.PARTIAL
    assert summary.failed_line_indices == [3]
    failed = [batch for batch in summary.batches if batch.failure_reason]
    assert failed[0].failure_reason == FailureReason.RUNTIME_ERROR
    assert failed[0].attempts == 1
    assert failed[0].error_message == "RuntimeError: unexpected completion payload"
    assert runtime.calls == 2
    assert "batch_failed" in sink.events()


@pytest.mark.asyncio
async def test_segment_mismatch_fails_batch_with_diagnostic(
    run_config: RunConfig,
) -> None:
    """A response with the wrong segment count is a parse failure."""
    sink = _StubLogSink()
    pipeline = _pipeline(run_config, _DictionaryRuntime(drop_last=True), sink)
    result = await pipeline.run(DOCUMENT)

    assert result.lines == DOCUMENT
    assert result.summary.status == RunStatus.FAILED
    assert result.summary.batches[0].failure_reason == FailureReason.PARSE_ERROR
    parse_entries = [e for e in sink.entries if e.event == "batch_parse_failed"]
    assert len(parse_entries) == 1
    assert parse_entries[0].data is not None
    assert parse_entries[0].data["expected"] == 2
    assert parse_entries[0].data["received"] == 1
    assert parse_entries[0].data["pairs"] == [["こんにちは", "你好"]]
    assert "batch_failed" in sink.events()


@pytest.mark.asyncio
async def test_dead_pool_fails_every_batch(
    config_payload: dict[str, JsonValue],
) -> None:
    """Once every credential is rejected the run fails as pool exhausted."""
    config_payload["dispatch"]["max_concurrent"] = 1
    config = _one_batch_per_line(config_payload)
    runtime = _DictionaryRuntime(revoked=True)
    result = await _pipeline(config, runtime).run(DOCUMENT)

    summary = result.summary
    assert summary.pool_exhausted
    assert summary.status == RunStatus.FAILED
    assert summary.failed_line_indices == [1, 3]
    assert {batch.failure_reason for batch in summary.batches} == {
        FailureReason.POOL_EXHAUSTED
    }
    assert runtime.calls == 2


@pytest.mark.asyncio
async def test_cancelled_run_writes_source_lines(run_config: RunConfig) -> None:
    """Cancelling before dispatch leaves every line as in the input."""
    cancel = asyncio.Event()
    cancel.set()
    runtime = _DictionaryRuntime()
    result = await _pipeline(run_config, runtime).run(DOCUMENT, cancel_event=cancel)

    assert result.lines == DOCUMENT
    assert result.summary.status == RunStatus.CANCELLED
    assert result.summary.cancelled
    assert runtime.calls == 0


@pytest.mark.asyncio
async def test_demoted_lines_are_reported(run_config: RunConfig) -> None:
    """Filtered lines without a capture match pass through with a warning."""
    sink = _StubLogSink()
    lines = ["# コメント\n", *DOCUMENT]
    result = await _pipeline(run_config, _DictionaryRuntime(), sink).run(lines)

    assert result.lines[0] == "# コメント\n"
    assert [w.reason for w in result.summary.warnings] == [
        ExtractionWarningReason.NO_MATCH
    ]
    assert result.summary.candidate_lines == 2
    assert "line_demoted" in sink.events()


@pytest.mark.asyncio
async def test_progress_reports_each_batch(
    config_payload: dict[str, JsonValue],
) -> None:
    """The progress callback fires once per finished batch."""
    config = _one_batch_per_line(config_payload)
    reports: list[BatchReport] = []
    result = await _pipeline(config, _DictionaryRuntime()).run(
        DOCUMENT, run_id=uuid4(), progress=reports.append
    )
    assert result.summary.batch_count == 2
    assert sorted(report.batch_id for report in reports) == [0, 1]
