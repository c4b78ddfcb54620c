"""In-memory records for lines and batches moving through a run."""

from __future__ import annotations

from dataclasses import dataclass, field

from linetl_schemas.primitives import BatchStatus, FailureReason
from linetl_schemas.results import BatchReport

LINE_ENDINGS = ("\r\n", "\n", "\r")


def split_line_ending(line: str) -> tuple[str, str]:
    """Split a physical line into its text and terminator.

    Args:
        line: Line as read from disk, terminator included.

    Returns:
        tuple[str, str]: Text without terminator and the terminator itself
        (empty for an unterminated final line).
    """
    for ending in LINE_ENDINGS:
        if line.endswith(ending):
            return line[: -len(ending)], ending
    return line, ""


@dataclass(slots=True)
class LineRecord:
    """One input line and everything learned about it during a run."""

    index: int
    raw: str
    ending: str = ""
    matched: bool = False
    captured: str | None = None
    span: tuple[int, int] | None = None
    translated: str | None = None
    failure: FailureReason | None = None

    @classmethod
    def from_line(cls, index: int, line: str) -> LineRecord:
        """Build a record from a physical line.

        Args:
            index: 0-based position in the document.
            line: Line text including its terminator.

        Returns:
            LineRecord: Unprocessed record.
        """
        raw, ending = split_line_ending(line)
        return cls(index=index, raw=raw, ending=ending)

    def demote(self) -> None:
        """Drop the record back to pass-through."""
        self.matched = False
        self.captured = None
        self.span = None

    def render(self) -> str:
        """Return the output line, terminator included."""
        text = self.translated if self.translated is not None else self.raw
        return f"{text}{self.ending}"


@dataclass(slots=True)
class Batch:
    """An ordered group of candidate lines sent in one request."""

    id: int
    members: list[LineRecord]
    estimated_tokens: int
    oversized: bool = False
    status: BatchStatus = BatchStatus.PENDING
    attempts: int = 0
    credentials: list[str] = field(default_factory=list)
    failure_reason: FailureReason | None = None
    error_message: str | None = None

    @property
    def texts(self) -> list[str]:
        """Captured text of every member, in order."""
        return [member.captured or "" for member in self.members]

    @property
    def line_indices(self) -> list[int]:
        """Document indices of every member, in order."""
        return [member.index for member in self.members]

    def fail(self, reason: FailureReason, message: str | None = None) -> None:
        """Move the batch to its failed-final state and flag its members.

        Args:
            reason: Why the batch failed.
            message: Last error message, if any.
        """
        self.status = BatchStatus.FAILED_FINAL
        self.failure_reason = reason
        if message is not None:
            self.error_message = message
        for member in self.members:
            member.translated = None
            member.failure = reason

    def to_report(self) -> BatchReport:
        """Build the summary report for this batch.

        Returns:
            BatchReport: Serializable batch report.
        """
        return BatchReport(
            batch_id=self.id,
            status=self.status,
            line_indices=self.line_indices,
            estimated_tokens=self.estimated_tokens,
            oversized=self.oversized,
            attempts=self.attempts,
            credentials=list(self.credentials),
            failure_reason=self.failure_reason,
            error_message=self.error_message,
        )


@dataclass(frozen=True, slots=True)
class BatchOutcome:
    """Terminal dispatch result for one batch."""

    batch_id: int
    response_text: str | None = None
    failure_reason: FailureReason | None = None
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        """Whether the batch received a response."""
        return self.response_text is not None
