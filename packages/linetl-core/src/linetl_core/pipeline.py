"""Translation pipeline wiring filter, extraction, dispatch and reinjection."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

from linetl_core.batching import Batcher
from linetl_core.credentials import CredentialPool
from linetl_core.dispatcher import Dispatcher, SleepFn
from linetl_core.extraction import Extractor
from linetl_core.filtering import LineFilter
from linetl_core.ports.llm import ChatRuntimeProtocol
from linetl_core.ports.orchestrator import (
    LogSinkProtocol,
    ProgressCallback,
    build_batch_log,
    build_line_demoted_log,
    build_parse_failed_log,
    build_run_completed_log,
    build_run_started_log,
)
from linetl_core.prompts import PromptBuilder
from linetl_core.records import Batch, BatchOutcome, LineRecord
from linetl_core.reinjection import Reinjector, assemble
from linetl_core.retry import RetryPolicy
from linetl_core.transform import ParseError, ResponseTransformer, build_output_rules
from linetl_schemas.config import RunConfig
from linetl_schemas.events import BatchEvent, BatchEventData, ParseFailureData
from linetl_schemas.llm import ChatMessage
from linetl_schemas.logs import LogEntry
from linetl_schemas.primitives import (
    BatchStatus,
    FailureReason,
    LogLevel,
    RunStatus,
    Timestamp,
)
from linetl_schemas.results import ExtractionWarning, RunSummary

_log = logging.getLogger(__name__)

# Aligned source/segment pairs kept in a parse failure diagnostic
PARSE_DIAGNOSTIC_PAIRS = 20


@dataclass(slots=True)
class PreparedDocument:
    """Records and batches planned for a document before dispatch."""

    records: list[LineRecord]
    batches: list[Batch]
    warnings: list[ExtractionWarning] = field(default_factory=list)

    @property
    def candidate_count(self) -> int:
        """Number of records left as translation candidates."""
        return sum(1 for record in self.records if record.matched)


@dataclass(slots=True)
class PipelineResult:
    """Output lines and summary of a completed run."""

    lines: list[str]
    summary: RunSummary
    records: list[LineRecord]


class TranslationPipeline:
    """Translates a document line by line through a chat runtime."""

    def __init__(
        self,
        config: RunConfig,
        *,
        runtime: ChatRuntimeProtocol,
        pool: CredentialPool,
        prompt_template: Sequence[ChatMessage] | None = None,
        log_sink: LogSinkProtocol | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize the pipeline and compile every pattern.

        Args:
            config: Validated run configuration.
            runtime: Chat runtime used for requests.
            pool: Credential pool.
            prompt_template: Messages placed before every batch.
            log_sink: Optional sink for run events.
            sleep: Awaitable used for backoff waits.

        Raises:
            ConfigurationError: If a pattern or setting is unusable.
        """
        extraction = config.extraction
        self._config = config
        self._runtime = runtime
        self._pool = pool
        self._log_sink = log_sink
        self._sleep = sleep
        self._filter = LineFilter(extraction.filter_patterns)
        self._extractor = Extractor(
            extraction.mode, extraction.capture_pattern, trim=extraction.trim
        )
        self._batcher = Batcher(config.batching.max_tokens)
        self._prompts = PromptBuilder(
            config.languages.source, config.languages.target, prompt_template
        )
        self._transformer = ResponseTransformer(
            build_output_rules(config.output_rules)
        )
        self._reinjector = Reinjector(
            extraction.replace_expression,
            escape=extraction.escape,
            line_width=extraction.line_width,
        )

    def prepare(self, lines: Sequence[str]) -> PreparedDocument:
        """Classify, extract and batch document lines.

        Args:
            lines: Physical lines including their terminators.

        Returns:
            PreparedDocument: Records, batches and extraction warnings.
        """
        records = [
            LineRecord.from_line(index, line) for index, line in enumerate(lines)
        ]
        self._filter.apply(records)
        warnings = self._extractor.apply(records)
        batches = self._batcher.build(records)
        return PreparedDocument(records=records, batches=batches, warnings=warnings)

    async def run(
        self,
        document: Sequence[str] | PreparedDocument,
        *,
        run_id: UUID | None = None,
        cancel_event: asyncio.Event | None = None,
        progress: ProgressCallback | None = None,
        input_path: str | None = None,
        output_path: str | None = None,
    ) -> PipelineResult:
        """Translate a document.

        Args:
            document: Physical lines including their terminators, or a
                document already planned by ``prepare``.
            run_id: Optional run identifier.
            cancel_event: Stops scheduling of new batches when set.
            progress: Called with each batch report as batches finish.
            input_path: Input path recorded in the summary.
            output_path: Output path recorded in the summary.

        Returns:
            PipelineResult: Output lines in input order plus the run summary.
        """
        run_id = run_id or uuid4()
        started_at = _now_timestamp()
        prepared = (
            document
            if isinstance(document, PreparedDocument)
            else self.prepare(document)
        )
        dispatch = self._config.dispatch
        await self._emit(
            build_run_started_log(
                started_at,
                run_id,
                source_language=self._config.languages.source,
                target_language=self._config.languages.target,
                total_lines=len(prepared.records),
                candidate_lines=prepared.candidate_count,
                batch_count=len(prepared.batches),
                max_concurrent=dispatch.max_concurrent,
            )
        )
        for warning in prepared.warnings:
            await self._emit(
                build_line_demoted_log(
                    _now_timestamp(), run_id, warning.line_index, warning.reason
                )
            )

        dispatcher = Dispatcher(
            runtime=self._runtime,
            pool=self._pool,
            prompts=self._prompts,
            model=self._config.model,
            retry=RetryPolicy.from_config(self._config.retry),
            max_concurrent=dispatch.max_concurrent,
            request_timeout_s=dispatch.request_timeout_s,
            drain_timeout_s=dispatch.drain_timeout_s,
            log_sink=self._log_sink,
            run_id=run_id,
            sleep=self._sleep,
        )

        async def _on_outcome(batch: Batch, outcome: BatchOutcome) -> None:
            await self._complete_batch(run_id, batch, outcome)
            if progress is not None:
                progress(batch.to_report())

        cancel = cancel_event or asyncio.Event()
        await dispatcher.dispatch(
            prepared.batches, cancel_event=cancel, on_outcome=_on_outcome
        )

        summary = self._summarize(
            run_id,
            prepared,
            started_at=started_at,
            pool_exhausted=dispatcher.pool_exhausted,
            cancelled=cancel.is_set(),
            input_path=input_path,
            output_path=output_path,
        )
        await self._emit(
            build_run_completed_log(
                summary.completed_at,
                run_id,
                RunStatus(summary.status),
                translated_lines=summary.translated_lines,
                failed_lines=len(summary.failed_line_indices),
            )
        )
        return PipelineResult(
            lines=assemble(prepared.records),
            summary=summary,
            records=prepared.records,
        )

    async def _complete_batch(
        self, run_id: UUID, batch: Batch, outcome: BatchOutcome
    ) -> None:
        if outcome.response_text is not None:
            try:
                segments = self._transformer.transform(
                    outcome.response_text, len(batch.members)
                )
            except ParseError as exc:
                batch.fail(FailureReason.PARSE_ERROR, str(exc))
                pairs = [
                    [source, segment]
                    for source, segment in zip(batch.texts, exc.segments, strict=False)
                ][:PARSE_DIAGNOSTIC_PAIRS]
                await self._emit(
                    build_parse_failed_log(
                        _now_timestamp(),
                        run_id,
                        batch.id,
                        ParseFailureData(
                            expected=exc.expected, received=exc.received, pairs=pairs
                        ),
                    )
                )
            else:
                self._reinjector.apply(batch.members, segments)
                batch.status = BatchStatus.REINJECTED
                return
        _log.warning(
            "Batch %s failed (%s): lines %s",
            batch.id,
            batch.failure_reason,
            [index + 1 for index in batch.line_indices],
        )
        await self._emit(
            build_batch_log(
                _now_timestamp(),
                run_id,
                batch.id,
                BatchEvent.FAILED,
                f"Batch {batch.id} failed",
                BatchEventData(
                    size=len(batch.members),
                    attempt=batch.attempts or None,
                    failure_reason=batch.failure_reason,
                    error_message=batch.error_message,
                ),
                level=LogLevel.ERROR,
            )
        )

    def _summarize(
        self,
        run_id: UUID,
        prepared: PreparedDocument,
        *,
        started_at: Timestamp,
        pool_exhausted: bool,
        cancelled: bool,
        input_path: str | None,
        output_path: str | None,
    ) -> RunSummary:
        candidates = [record for record in prepared.records if record.matched]
        translated = sum(1 for record in candidates if record.translated is not None)
        failed = [record.index for record in candidates if record.translated is None]
        failed_batches = sum(
            1
            for batch in prepared.batches
            if batch.status == BatchStatus.FAILED_FINAL
        )
        if cancelled and failed:
            status = RunStatus.CANCELLED
        elif not failed:
            status = RunStatus.COMPLETED
        elif translated:
            status = RunStatus.PARTIAL
        else:
            status = RunStatus.FAILED
        return RunSummary(
            run_id=run_id,
            status=status,
            input_path=input_path,
            output_path=output_path,
            started_at=started_at,
            completed_at=_now_timestamp(),
            total_lines=len(prepared.records),
            candidate_lines=len(candidates),
            translated_lines=translated,
            failed_line_indices=failed,
            batch_count=len(prepared.batches),
            failed_batch_count=failed_batches,
            batches=[batch.to_report() for batch in prepared.batches],
            warnings=prepared.warnings,
            pool_exhausted=pool_exhausted,
            cancelled=cancelled,
        )

    async def _emit(self, entry: LogEntry) -> None:
        if self._log_sink is not None:
            await self._log_sink.emit_log(entry)


def _now_timestamp() -> Timestamp:
    return datetime.now(tz=UTC).isoformat()
