"""Run summary and connectivity report schemas."""

from __future__ import annotations

from pydantic import Field, model_validator

from linetl_schemas.base import BaseSchema
from linetl_schemas.primitives import (
    BatchStatus,
    ConnectionStatus,
    ExtractionWarningReason,
    FailureReason,
    RunId,
    RunStatus,
    Timestamp,
)


class ExtractionWarning(BaseSchema):
    """A candidate line that was demoted during extraction."""

    line_index: int = Field(..., ge=0, description="0-based line index")
    reason: ExtractionWarningReason = Field(..., description="Demotion reason")


class BatchReport(BaseSchema):
    """Terminal state of one batch."""

    batch_id: int = Field(..., ge=0, description="Batch sequence id")
    status: BatchStatus = Field(..., description="Terminal batch status")
    line_indices: list[int] = Field(..., min_length=1, description="Member lines")
    estimated_tokens: int = Field(..., ge=0, description="Estimated token count")
    oversized: bool = Field(False, description="Single member over the budget")
    attempts: int = Field(..., ge=0, description="Dispatch attempts made")
    credentials: list[str] = Field(
        default_factory=list, description="Credentials used, in attempt order"
    )
    failure_reason: FailureReason | None = Field(
        None, description="Why the batch failed"
    )
    error_message: str | None = Field(None, description="Last error message")


class RunSummary(BaseSchema):
    """Machine-readable summary of a translation run."""

    run_id: RunId = Field(..., description="Run identifier")
    status: RunStatus = Field(..., description="Final run status")
    input_path: str | None = Field(None, description="Input document path")
    output_path: str | None = Field(None, description="Output document path")
    started_at: Timestamp = Field(..., description="Run start timestamp")
    completed_at: Timestamp = Field(..., description="Run completion timestamp")
    total_lines: int = Field(..., ge=0, description="Lines in the input document")
    candidate_lines: int = Field(..., ge=0, description="Lines sent for translation")
    translated_lines: int = Field(..., ge=0, description="Lines translated")
    failed_line_indices: list[int] = Field(
        default_factory=list, description="0-based indices of untranslated lines"
    )
    batch_count: int = Field(..., ge=0, description="Batches planned")
    failed_batch_count: int = Field(..., ge=0, description="Batches failed")
    batches: list[BatchReport] = Field(
        default_factory=list, description="Per-batch reports"
    )
    warnings: list[ExtractionWarning] = Field(
        default_factory=list, description="Extraction warnings"
    )
    pool_exhausted: bool = Field(False, description="All credentials became dead")
    cancelled: bool = Field(False, description="Run was cancelled")

    @model_validator(mode="after")
    def validate_counts(self) -> RunSummary:
        """Ensure line counts are consistent.

        Returns:
            RunSummary: Validated summary.

        Raises:
            ValueError: If counts exceed their totals.
        """
        if self.candidate_lines > self.total_lines:
            raise ValueError("candidate_lines cannot exceed total_lines")
        if self.translated_lines + len(self.failed_line_indices) > (
            self.candidate_lines
        ):
            raise ValueError("translated and failed lines exceed candidate_lines")
        return self


class ConnectionCheckResult(BaseSchema):
    """Result for a single credential probe."""

    credential: str = Field(..., min_length=1, description="Credential name")
    base_url: str = Field(..., min_length=1, description="Endpoint base URL")
    model_id: str = Field(..., min_length=1, description="Model identifier")
    status: ConnectionStatus = Field(..., description="Probe status")
    duration_ms: int | None = Field(None, ge=0, description="Probe duration")
    response_text: str | None = Field(None, description="Response text sample")
    error_message: str | None = Field(None, description="Error message when failed")


class ConnectionReport(BaseSchema):
    """Summary of credential probes."""

    results: list[ConnectionCheckResult] = Field(..., description="Probe results")
    success_count: int = Field(..., ge=0, description="Successful probes")
    failure_count: int = Field(..., ge=0, description="Failed probes")
