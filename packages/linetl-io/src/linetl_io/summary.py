"""Run summary persistence."""

from __future__ import annotations

import asyncio
from pathlib import Path

from linetl_core.ports.document import (
    DocumentError,
    DocumentErrorCode,
    DocumentErrorDetails,
    DocumentErrorInfo,
)
from linetl_schemas.results import RunSummary


async def write_summary(path: str | Path, summary: RunSummary) -> None:
    """Write a run summary as JSON.

    Args:
        path: Destination path; parent directories are created.
        summary: Summary to persist.
    """
    await asyncio.to_thread(_write_summary_sync, Path(path), summary)


def _write_summary_sync(path: Path, summary: RunSummary) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(summary.model_dump_json(indent=2), encoding="utf-8")
    except OSError as exc:
        raise DocumentError(
            DocumentErrorInfo(
                code=DocumentErrorCode.WRITE_ERROR,
                message="Run summary could not be written",
                details=DocumentErrorDetails(path=str(path), reason=str(exc)),
            )
        ) from exc
