"""Credential connectivity probes."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from time import monotonic

from linetl_core.credentials import Credential
from linetl_core.ports.llm import ChatRuntimeProtocol, LlmRequestError
from linetl_core.prompts import PromptBuilder
from linetl_schemas.config import ModelSettings
from linetl_schemas.llm import ChatRequest
from linetl_schemas.primitives import ConnectionStatus
from linetl_schemas.results import ConnectionCheckResult, ConnectionReport

PROBE_TEXT = "Hello."
RESPONSE_SAMPLE_CHARS = 200


async def validate_connections(
    runtime: ChatRuntimeProtocol,
    credentials: Sequence[Credential],
    *,
    model: ModelSettings,
    prompts: PromptBuilder,
    timeout_s: float,
    max_concurrent: int = 4,
) -> ConnectionReport:
    """Send a one-line probe through every credential.

    Args:
        runtime: Chat runtime adapter.
        credentials: Credentials to probe.
        model: Model settings for the probe.
        prompts: Prompt builder used to shape the probe like a real batch.
        timeout_s: Request timeout per probe.
        max_concurrent: Maximum probes in flight.

    Returns:
        ConnectionReport: Per-credential results.
    """
    request = ChatRequest(
        messages=prompts.build_for_texts([PROBE_TEXT]), model=model
    )
    semaphore = asyncio.Semaphore(max(1, max_concurrent))

    async def _probe(credential: Credential) -> ConnectionCheckResult:
        async with semaphore:
            return await _check_credential(
                runtime, credential, request=request, timeout_s=timeout_s
            )

    tasks: list[asyncio.Task[ConnectionCheckResult]] = []
    async with asyncio.TaskGroup() as group:
        for credential in credentials:
            tasks.append(group.create_task(_probe(credential)))
    results = [task.result() for task in tasks]
    success = sum(1 for result in results if result.status == ConnectionStatus.SUCCESS)
    return ConnectionReport(
        results=results,
        success_count=success,
        failure_count=len(results) - success,
    )


async def _check_credential(
    runtime: ChatRuntimeProtocol,
    credential: Credential,
    *,
    request: ChatRequest,
    timeout_s: float,
) -> ConnectionCheckResult:
    start = monotonic()
    try:
        response = await runtime.run_chat(
            request, endpoint=credential.endpoint(timeout_s)
        )
    except LlmRequestError as exc:
        return ConnectionCheckResult(
            credential=credential.name,
            base_url=credential.base_url,
            model_id=request.model.model_id,
            status=ConnectionStatus.FAILED,
            duration_ms=_duration_ms(start),
            error_message=f"{exc.kind}: {exc}",
        )
    return ConnectionCheckResult(
        credential=credential.name,
        base_url=credential.base_url,
        model_id=response.model_id,
        status=ConnectionStatus.SUCCESS,
        duration_ms=_duration_ms(start),
        response_text=response.output_text[:RESPONSE_SAMPLE_CHARS],
    )


def _duration_ms(start: float) -> int:
    return int((monotonic() - start) * 1000)
