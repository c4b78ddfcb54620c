"""Concurrent batch dispatch through the credential pool."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, datetime
from uuid import UUID, uuid4

from linetl_core.credentials import Credential, CredentialPool, PoolExhaustedError
from linetl_core.ports.llm import ChatRuntimeProtocol, LlmRequestError
from linetl_core.ports.orchestrator import (
    LogSinkProtocol,
    build_batch_log,
    build_credential_log,
)
from linetl_core.prompts import PromptBuilder
from linetl_core.records import Batch, BatchOutcome
from linetl_core.retry import RetryPolicy
from linetl_schemas.config import ModelSettings
from linetl_schemas.events import BatchEvent, BatchEventData, CredentialEventData
from linetl_schemas.llm import ChatRequest
from linetl_schemas.logs import LogEntry
from linetl_schemas.primitives import (
    BatchStatus,
    CredentialHealth,
    FailureKind,
    FailureReason,
    LogLevel,
    Timestamp,
)

_log = logging.getLogger(__name__)

type SleepFn = Callable[[float], Awaitable[None]]
type OutcomeCallback = Callable[[Batch, BatchOutcome], Awaitable[None]]


class Dispatcher:
    """Sends batches through a fixed pool of workers.

    At most ``max_concurrent`` requests are in flight. Failed attempts are
    retried on another credential after the policy's backoff; once the
    attempt budget is spent the batch is failed-final. When every credential
    is dead no further batches are dispatched.
    """

    def __init__(
        self,
        *,
        runtime: ChatRuntimeProtocol,
        pool: CredentialPool,
        prompts: PromptBuilder,
        model: ModelSettings,
        retry: RetryPolicy,
        max_concurrent: int,
        request_timeout_s: float,
        drain_timeout_s: float = 10.0,
        log_sink: LogSinkProtocol | None = None,
        run_id: UUID | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            runtime: Chat runtime used for requests.
            pool: Credential pool shared by all workers.
            prompts: Prompt builder for batch requests.
            model: Model settings sent with every request.
            retry: Backoff policy.
            max_concurrent: Run-wide ceiling on in-flight requests.
            request_timeout_s: Per-request timeout in seconds.
            drain_timeout_s: Grace period for in-flight requests on cancel.
            log_sink: Optional sink for dispatch events.
            run_id: Run identifier for log entries.
            sleep: Awaitable used for backoff waits.

        Raises:
            ValueError: If max_concurrent is not positive.
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be positive")
        self._runtime = runtime
        self._pool = pool
        self._prompts = prompts
        self._model = model
        self._retry = retry
        self._max_concurrent = max_concurrent
        self._request_timeout_s = request_timeout_s
        self._drain_timeout_s = drain_timeout_s
        self._log_sink = log_sink
        self._run_id = run_id or uuid4()
        self._sleep = sleep
        self._halted = False

    @property
    def pool_exhausted(self) -> bool:
        """Whether dispatch stopped because every credential died."""
        return self._halted

    async def dispatch(
        self,
        batches: Sequence[Batch],
        *,
        cancel_event: asyncio.Event | None = None,
        on_outcome: OutcomeCallback | None = None,
    ) -> dict[int, BatchOutcome]:
        """Dispatch batches and collect one terminal outcome per batch.

        Args:
            batches: Batches in document order.
            cancel_event: Stops scheduling of new batches when set.
            on_outcome: Awaited after each batch reaches a terminal outcome.

        Returns:
            dict[int, BatchOutcome]: Outcomes keyed by batch id.
        """
        cancel = cancel_event or asyncio.Event()
        outcomes: dict[int, BatchOutcome] = {}
        queue: asyncio.Queue[Batch] = asyncio.Queue()
        for batch in batches:
            queue.put_nowait(batch)

        async def _worker() -> None:
            while not (cancel.is_set() or self._halted):
                try:
                    batch = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                outcome = await self._dispatch_batch(batch, cancel)
                outcomes[batch.id] = outcome
                if on_outcome is not None:
                    await on_outcome(batch, outcome)

        worker_count = min(self._max_concurrent, len(batches))
        if worker_count:
            tasks = [asyncio.create_task(_worker()) for _ in range(worker_count)]
            await self._join_workers(tasks, cancel)

        for batch in batches:
            if batch.id in outcomes:
                continue
            reason = (
                FailureReason.POOL_EXHAUSTED
                if self._halted
                else FailureReason.CANCELLED
            )
            outcomes[batch.id] = self._fail(batch, reason, batch.error_message)
            if on_outcome is not None:
                await on_outcome(batch, outcomes[batch.id])
        return outcomes

    async def _join_workers(
        self, tasks: list[asyncio.Task[None]], cancel: asyncio.Event
    ) -> None:
        workers = asyncio.gather(*tasks)
        cancel_wait = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait(
                {workers, cancel_wait}, return_when=asyncio.FIRST_COMPLETED
            )
            if not workers.done():
                _log.info(
                    "Cancellation requested; draining in-flight requests for %.1fs",
                    self._drain_timeout_s,
                )
                await asyncio.wait({workers}, timeout=self._drain_timeout_s)
            if not workers.done():
                workers.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await workers
                return
            if workers.exception() is not None:
                for task in tasks:
                    task.cancel()
            workers.result()
        finally:
            cancel_wait.cancel()

    async def _dispatch_batch(
        self, batch: Batch, cancel: asyncio.Event
    ) -> BatchOutcome:
        request = ChatRequest(messages=self._prompts.build(batch), model=self._model)
        last_credential: str | None = None
        for attempt in range(1, self._retry.max_attempts + 1):
            if cancel.is_set():
                return self._fail(batch, FailureReason.CANCELLED, batch.error_message)
            batch.attempts = attempt
            exclude = {last_credential} if last_credential else set()
            try:
                credential = await self._pool.acquire(exclude)
            except PoolExhaustedError as exc:
                batch.error_message = str(exc)
                if exc.all_dead:
                    self._halted = True
                    return self._fail(batch, FailureReason.POOL_EXHAUSTED, str(exc))
                if not self._retry.allows_retry(attempt):
                    break
                wait_s = max(0.0, (exc.retry_at or 0.0) - self._pool.now())
                delay = max(
                    self._retry.delay_for(attempt),
                    min(wait_s, self._retry.max_delay_s),
                )
                await self._emit_retry(batch, attempt, None, None, delay)
                await self._sleep(delay)
                continue

            batch.status = BatchStatus.DISPATCHED
            batch.credentials.append(credential.name)
            await self._emit(
                build_batch_log(
                    _now_timestamp(),
                    self._run_id,
                    batch.id,
                    BatchEvent.DISPATCHED,
                    f"Batch {batch.id} dispatched",
                    BatchEventData(
                        size=len(batch.members),
                        attempt=attempt,
                        credential=credential.name,
                    ),
                    level=LogLevel.DEBUG,
                )
            )
            try:
                response = await self._runtime.run_chat(
                    request, endpoint=credential.endpoint(self._request_timeout_s)
                )
            except LlmRequestError as exc:
                batch.status = BatchStatus.FAILED
                batch.error_message = str(exc)
                last_credential = credential.name
                await self._record_failure(credential, exc.kind)
                if not self._retry.allows_retry(attempt):
                    break
                delay = self._retry.delay_for(attempt)
                if exc.retry_after_s is not None:
                    hint = min(exc.retry_after_s, self._retry.max_delay_s)
                    delay = max(delay, hint)
                batch.status = BatchStatus.RETRYING
                await self._emit_retry(batch, attempt, credential, exc, delay)
                await self._sleep(delay)
                continue
            except Exception as exc:
                _log.exception(
                    "Batch %d failed with an unexpected runtime error", batch.id
                )
                return self._fail(
                    batch, FailureReason.RUNTIME_ERROR, f"{type(exc).__name__}: {exc}"
                )

            await self._pool.report_success(credential)
            batch.status = BatchStatus.SUCCEEDED
            batch.error_message = None
            await self._emit(
                build_batch_log(
                    _now_timestamp(),
                    self._run_id,
                    batch.id,
                    BatchEvent.SUCCEEDED,
                    f"Batch {batch.id} translated",
                    BatchEventData(
                        size=len(batch.members),
                        attempt=attempt,
                        credential=credential.name,
                    ),
                )
            )
            return BatchOutcome(batch_id=batch.id, response_text=response.output_text)

        return self._fail(
            batch, FailureReason.RETRIES_EXHAUSTED, batch.error_message
        )

    def _fail(
        self, batch: Batch, reason: FailureReason, message: str | None
    ) -> BatchOutcome:
        batch.fail(reason, message)
        return BatchOutcome(
            batch_id=batch.id, failure_reason=reason, error_message=message
        )

    async def _record_failure(self, credential: Credential, kind: FailureKind) -> None:
        before = credential.health
        transition = await self._pool.report_failure(credential, kind)
        if before == transition.health == CredentialHealth.DEAD:
            return
        await self._emit(
            build_credential_log(
                _now_timestamp(),
                self._run_id,
                CredentialEventData(
                    credential=transition.credential,
                    health=transition.health,
                    failure_kind=kind,
                    cooldown_s=transition.cooldown_s,
                ),
            )
        )

    async def _emit_retry(
        self,
        batch: Batch,
        attempt: int,
        credential: Credential | None,
        error: LlmRequestError | None,
        delay: float,
    ) -> None:
        await self._emit(
            build_batch_log(
                _now_timestamp(),
                self._run_id,
                batch.id,
                BatchEvent.RETRYING,
                f"Batch {batch.id} attempt {attempt} failed, retrying",
                BatchEventData(
                    size=len(batch.members),
                    attempt=attempt,
                    credential=credential.name if credential else None,
                    failure_kind=error.kind if error else None,
                    delay_s=delay,
                    error_message=batch.error_message,
                ),
                level=LogLevel.WARN,
            )
        )

    async def _emit(self, entry: LogEntry) -> None:
        if self._log_sink is not None:
            await self._log_sink.emit_log(entry)


def _now_timestamp() -> Timestamp:
    return datetime.now(tz=UTC).isoformat()
