"""Line-exact reading and writing of translation documents."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path

from linetl_core.ports.document import (
    DocumentError,
    DocumentErrorCode,
    DocumentErrorDetails,
    DocumentErrorInfo,
)

DOCUMENT_ENCODING = "utf-8"


async def read_document(path: str | Path) -> list[str]:
    """Read a document as physical lines with their terminators.

    Line endings (``\\n``, ``\\r\\n``, ``\\r``) are preserved exactly, as is a
    missing terminator on the final line.

    Args:
        path: Document path.

    Returns:
        list[str]: Lines including terminators.
    """
    return await asyncio.to_thread(_read_lines_sync, Path(path))


async def write_document(path: str | Path, lines: Sequence[str]) -> None:
    """Write physical lines exactly as given.

    Args:
        path: Output path; parent directories are created.
        lines: Lines including terminators.
    """
    await asyncio.to_thread(_write_lines_sync, Path(path), list(lines))


def default_output_path(input_path: str | Path, suffix: str) -> Path:
    """Derive the output path next to the input document.

    Args:
        input_path: Input document path.
        suffix: Marker inserted before the extension.

    Returns:
        Path: ``<stem><suffix><ext>`` in the input directory.
    """
    source = Path(input_path)
    return source.with_name(f"{source.stem}{suffix}{source.suffix}")


def _read_lines_sync(path: Path) -> list[str]:
    try:
        with open(path, encoding=DOCUMENT_ENCODING, newline="") as handle:
            return list(handle)
    except FileNotFoundError as exc:
        raise _document_error(
            DocumentErrorCode.NOT_FOUND, "Input document not found", path, exc
        ) from exc
    except UnicodeDecodeError as exc:
        raise _document_error(
            DocumentErrorCode.DECODE_ERROR,
            f"Input document is not valid {DOCUMENT_ENCODING}",
            path,
            exc,
        ) from exc
    except OSError as exc:
        raise _document_error(
            DocumentErrorCode.READ_ERROR, "Input document could not be read", path, exc
        ) from exc


def _write_lines_sync(path: Path, lines: list[str]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding=DOCUMENT_ENCODING, newline="") as handle:
            handle.writelines(lines)
    except OSError as exc:
        raise _document_error(
            DocumentErrorCode.WRITE_ERROR,
            "Output document could not be written",
            path,
            exc,
        ) from exc


def _document_error(
    code: DocumentErrorCode, message: str, path: Path, exc: Exception
) -> DocumentError:
    return DocumentError(
        DocumentErrorInfo(
            code=code,
            message=message,
            details=DocumentErrorDetails(path=str(path), reason=str(exc)),
        )
    )
