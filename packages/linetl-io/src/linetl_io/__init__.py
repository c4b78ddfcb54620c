"""linetl-io: Document, prompt and log adapters."""

from linetl_io.document import default_output_path, read_document, write_document
from linetl_io.log_sink import (
    CompositeLogSink,
    ConsoleLogSink,
    FileLogSink,
    NoopLogSink,
    RedactingLogSink,
    build_log_sink,
)
from linetl_io.prompt_loader import load_prompt_template
from linetl_io.summary import write_summary

__all__ = [
    "CompositeLogSink",
    "ConsoleLogSink",
    "FileLogSink",
    "NoopLogSink",
    "RedactingLogSink",
    "build_log_sink",
    "default_output_path",
    "load_prompt_template",
    "read_document",
    "write_document",
    "write_summary",
]
