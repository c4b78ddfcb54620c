"""CLI entry point - thin adapter over linetl-core."""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
import sys
import tomllib
from collections.abc import Iterator, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import TypeVar
from uuid import uuid4

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from linetl_core import VERSION
from linetl_core.connection import validate_connections
from linetl_core.credentials import Credential, CredentialPool, resolve_credentials
from linetl_core.extraction import Extractor
from linetl_core.filtering import LineFilter
from linetl_core.pipeline import TranslationPipeline
from linetl_core.ports.document import DocumentError, DocumentErrorCode
from linetl_core.ports.orchestrator import (
    LogSinkProtocol,
    ProgressCallback,
    TranslationError,
    TranslationErrorCode,
    TranslationErrorDetails,
    TranslationErrorInfo,
    build_run_failed_log,
)
from linetl_core.prompts import PromptBuilder
from linetl_core.reinjection import Reinjector
from linetl_core.transform import build_output_rules
from linetl_io import (
    build_log_sink,
    default_output_path,
    load_prompt_template,
    read_document,
    write_document,
    write_summary,
)
from linetl_llm import OpenAICompatibleRuntime
from linetl_schemas.config import LoggingConfig, LogSinkConfig, RunConfig
from linetl_schemas.exit_codes import DOMAIN_PREFIXES, ExitCode, resolve_exit_code
from linetl_schemas.llm import ChatMessage
from linetl_schemas.logs import LogEntry
from linetl_schemas.primitives import JsonValue, LogSinkType, RunId
from linetl_schemas.redaction import build_redactor
from linetl_schemas.responses import (
    ApiResponse,
    ConfigValidationResult,
    ErrorDetails,
    ErrorResponse,
    MetaInfo,
)
from linetl_schemas.results import BatchReport, ConnectionReport, RunSummary
from linetl_schemas.validation import validate_run_config

ResponseT = TypeVar("ResponseT")

FILE_ARGUMENT = typer.Argument(
    None, help="Document to translate (defaults to the config's file)"
)
CONFIG_OPTION = typer.Option(
    Path("linetl.toml"),
    "--config",
    "-c",
    help="Path to linetl TOML config",
)
OUTPUT_OPTION = typer.Option(
    None, "--output", "-o", help="Path to write the translated document"
)
SUMMARY_OPTION = typer.Option(
    None, "--summary", help="Path to write the JSON run summary"
)

# Failed line numbers shown in the interactive summary panel
_FAILED_LINES_SHOWN = 20

app = typer.Typer(
    help="Line-by-line document translation through chat models",
    no_args_is_help=True,
)


@app.callback()
def main() -> None:
    """Linetl CLI."""


@app.command()
def version() -> None:
    """Display version information."""
    rprint(f"[bold]linetl[/bold] v{VERSION}")


@app.command()
def translate(
    file: Path | None = FILE_ARGUMENT,
    config_path: Path = CONFIG_OPTION,
    output_path: Path | None = OUTPUT_OPTION,
    summary_path: Path | None = SUMMARY_OPTION,
) -> None:
    """Translate a document and write it beside the input.

    Raises:
        typer.Exit: When the run fails or leaves lines untranslated.
    """
    run_id = uuid4()
    log_sink: LogSinkProtocol | None = None
    progress: Progress | None = None
    console: Console | None = None
    try:
        config = _load_resolved_config(config_path)
        input_path = _resolve_input_path(file, config)
        resolved_output = output_path or default_output_path(
            input_path, config.output.suffix
        )
        credentials = resolve_credentials(config.dispatch.credentials, os.environ)
        interactive = _should_render_progress()
        log_sink = build_log_sink(
            _build_logging_config(config, allow_console_logs=not interactive),
            redactor=build_redactor(
                credential.api_key for credential in credentials
            ),
        )
        if interactive:
            console = Console(stderr=True)
            progress = _build_progress(console)
        with progress if progress is not None else contextlib.nullcontext():
            summary = asyncio.run(
                _translate_async(
                    config=config,
                    credentials=credentials,
                    input_path=input_path,
                    output_path=resolved_output,
                    summary_path=summary_path,
                    run_id=run_id,
                    log_sink=log_sink,
                    progress=progress,
                )
            )
        response: ApiResponse[RunSummary] = ApiResponse(
            data=summary,
            error=_incomplete_run_error(summary),
            meta=MetaInfo(timestamp=_now_timestamp()),
        )
    except Exception as exc:
        error = _error_from_exception(exc)
        if log_sink is not None:
            _emit_log_sync(log_sink, _build_failed_log(run_id, error))
        response = _error_response(error)
    if console is not None:
        _render_run_summary(response.data, console=console)
        if response.error is not None:
            _render_run_error(response.error, console=console)
    print(response.model_dump_json())
    _exit_for(response)


@app.command()
def validate(config_path: Path = CONFIG_OPTION) -> None:
    """Validate the config, patterns and prompt template without network access.

    Raises:
        typer.Exit: When validation fails.
    """
    try:
        config = _load_resolved_config(config_path)
        template = asyncio.run(_load_template(config))
        _compile_config(config, template)
        result = ConfigValidationResult(
            config_path=str(config_path),
            mode=config.extraction.mode,
            source_language=config.languages.source,
            target_language=config.languages.target,
            filter_count=len(config.extraction.filter_patterns),
            output_rule_count=len(config.output_rules),
            credential_count=len(config.dispatch.credentials),
            prompt_message_count=len(template or []),
        )
        response: ApiResponse[ConfigValidationResult] = ApiResponse(
            data=result,
            error=None,
            meta=MetaInfo(timestamp=_now_timestamp()),
        )
    except Exception as exc:
        response = _error_response(_error_from_exception(exc))
    print(response.model_dump_json())
    _exit_for(response)


@app.command("validate-connection")
def validate_connection(config_path: Path = CONFIG_OPTION) -> None:
    """Send a one-line probe through every configured credential.

    Raises:
        typer.Exit: When no credential answers.
    """
    try:
        config = _load_resolved_config(config_path)
        credentials = resolve_credentials(config.dispatch.credentials, os.environ)
        report = asyncio.run(_validate_connection_async(config, credentials))
        error: ErrorResponse | None = None
        if report.success_count == 0:
            error = _build_error(
                "all_failed",
                "No credential answered the connection probe",
                domain="connection",
            )
        response: ApiResponse[ConnectionReport] = ApiResponse(
            data=report,
            error=error,
            meta=MetaInfo(timestamp=_now_timestamp()),
        )
    except Exception as exc:
        response = _error_response(_error_from_exception(exc))
    print(response.model_dump_json())
    _exit_for(response)


class _ConfigError(Exception):
    """Raised for CLI configuration issues."""


def _now_timestamp() -> str:
    timestamp = datetime.now(UTC).isoformat()
    return timestamp.replace("+00:00", "Z")


def _should_render_progress() -> bool:
    return sys.stderr.isatty()


def _build_progress(console: Console) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total} batches"),
        TimeRemainingColumn(),
        console=console,
    )


def _build_progress_callback(progress: Progress, total: int) -> ProgressCallback:
    task_id = progress.add_task("Translating", total=total)

    def _advance(report: BatchReport) -> None:
        progress.advance(task_id)

    return _advance


async def _translate_async(
    *,
    config: RunConfig,
    credentials: Sequence[Credential],
    input_path: Path,
    output_path: Path,
    summary_path: Path | None,
    run_id: RunId,
    log_sink: LogSinkProtocol,
    progress: Progress | None,
) -> RunSummary:
    template = await _load_template(config)
    lines = await read_document(input_path)
    pool = CredentialPool.from_config(credentials, config.cooldown)
    pipeline = TranslationPipeline(
        config,
        runtime=_build_llm_runtime(),
        pool=pool,
        prompt_template=template,
        log_sink=log_sink,
    )
    prepared = pipeline.prepare(lines)
    callback: ProgressCallback | None = None
    if progress is not None:
        callback = _build_progress_callback(progress, len(prepared.batches))
    cancel_event = asyncio.Event()
    with _cancel_on_sigint(cancel_event):
        result = await pipeline.run(
            prepared,
            run_id=run_id,
            cancel_event=cancel_event,
            progress=callback,
            input_path=str(input_path),
            output_path=str(output_path),
        )
    await write_document(output_path, result.lines)
    if summary_path is not None:
        await write_summary(summary_path, result.summary)
    return result.summary


@contextlib.contextmanager
def _cancel_on_sigint(cancel_event: asyncio.Event) -> Iterator[None]:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
        installed = True
    except (NotImplementedError, RuntimeError):
        installed = False
    try:
        yield
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


async def _load_template(config: RunConfig) -> list[ChatMessage] | None:
    if config.dispatch.prompt_path is None:
        return None
    return await load_prompt_template(config.dispatch.prompt_path)


def _compile_config(
    config: RunConfig, template: Sequence[ChatMessage] | None
) -> None:
    extraction = config.extraction
    LineFilter(extraction.filter_patterns)
    Extractor(extraction.mode, extraction.capture_pattern, trim=extraction.trim)
    build_output_rules(config.output_rules)
    Reinjector(
        extraction.replace_expression,
        escape=extraction.escape,
        line_width=extraction.line_width,
    )
    PromptBuilder(config.languages.source, config.languages.target, template)


async def _validate_connection_async(
    config: RunConfig, credentials: Sequence[Credential]
) -> ConnectionReport:
    template = await _load_template(config)
    return await validate_connections(
        _build_llm_runtime(),
        credentials,
        model=config.model,
        prompts=PromptBuilder(
            config.languages.source, config.languages.target, template
        ),
        timeout_s=config.dispatch.request_timeout_s,
        max_concurrent=config.dispatch.max_concurrent,
    )


def _build_llm_runtime() -> OpenAICompatibleRuntime:
    return OpenAICompatibleRuntime()


def _load_resolved_config(config_path: Path) -> RunConfig:
    config = _load_run_config(config_path)
    return _resolve_config_paths(config, config_path)


def _load_run_config(config_path: Path) -> RunConfig:
    _load_dotenv(config_path)
    if not config_path.exists():
        raise _ConfigError(f"Config not found: {config_path}")
    try:
        with open(config_path, "rb") as handle:
            payload: dict[str, JsonValue] = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise _ConfigError(f"Failed to read config: {exc}") from exc
    return validate_run_config(payload)


def _load_dotenv(config_path: Path) -> None:
    env_path = config_path.parent / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)


def _resolve_config_paths(config: RunConfig, config_path: Path) -> RunConfig:
    config_dir = config_path.parent
    updates: dict[str, object] = {}
    if config.file is not None:
        updates["file"] = str(_resolve_path(Path(config.file), config_dir))
    if config.dispatch.prompt_path is not None:
        prompt_path = _resolve_path(Path(config.dispatch.prompt_path), config_dir)
        updates["dispatch"] = config.dispatch.model_copy(
            update={"prompt_path": str(prompt_path)}
        )
    logs_dir = _resolve_path(Path(config.logging.logs_dir), config_dir)
    updates["logging"] = config.logging.model_copy(
        update={"logs_dir": str(logs_dir)}
    )
    return config.model_copy(update=updates)


def _resolve_path(path: Path, base_dir: Path) -> Path:
    resolved = path if path.is_absolute() else base_dir / path
    return resolved.resolve()


def _resolve_input_path(file: Path | None, config: RunConfig) -> Path:
    if file is not None:
        return file
    if config.file is None:
        raise _ConfigError("No input document: pass FILE or set `file` in the config")
    return Path(config.file)


def _build_logging_config(config: RunConfig, allow_console_logs: bool) -> LoggingConfig:
    if allow_console_logs:
        return config.logging
    sinks = [sink for sink in config.logging.sinks if sink.type != LogSinkType.CONSOLE]
    if not sinks:
        sinks = [LogSinkConfig(type=LogSinkType.FILE)]
    return LoggingConfig(sinks=sinks, logs_dir=config.logging.logs_dir)


async def _emit_log(log_sink: LogSinkProtocol, entry: LogEntry) -> None:
    await log_sink.emit_log(entry)


def _emit_log_sync(log_sink: LogSinkProtocol, entry: LogEntry) -> None:
    asyncio.run(_emit_log(log_sink, entry))


def _build_failed_log(run_id: RunId, error: ErrorResponse) -> LogEntry:
    return build_run_failed_log(
        _now_timestamp(),
        run_id,
        "Translation run failed",
        error.code,
        error.message,
        _next_action_for_error(error),
    )


def _next_action_for_error(error: ErrorResponse) -> str:
    actions = {
        "config_error": "Fix the configuration and retry.",
        "validation_error": "Fix the configuration values and retry.",
        "invalid_config": "Fix the configured patterns or settings and retry.",
        "no_credentials": "Set the API key environment variables and retry.",
        "not_found": "Check the input path and retry.",
        "read_error": "Check file permissions and retry.",
        "decode_error": "Convert the document to UTF-8 and retry.",
        "write_error": "Check the output path and permissions, then retry.",
        "prompt_error": "Fix the prompt template JSON and retry.",
        "runtime_error": "Review the logs and retry.",
    }
    return actions.get(error.code, "Review the logs and retry.")


def _incomplete_run_error(summary: RunSummary) -> ErrorResponse | None:
    if not summary.failed_line_indices:
        return None
    if summary.pool_exhausted:
        code = TranslationErrorCode.POOL_EXHAUSTED
        reason = "every credential failed permanently"
    elif summary.cancelled:
        code = TranslationErrorCode.CANCELLED
        reason = "run was cancelled"
    else:
        code = TranslationErrorCode.BATCHES_FAILED
        reason = f"{summary.failed_batch_count} batch(es) failed"
    info = TranslationErrorInfo(
        code=code,
        message=(
            f"{len(summary.failed_line_indices)} line(s) left untranslated: {reason}"
        ),
        details=TranslationErrorDetails(
            failed_line_indices=summary.failed_line_indices, reason=reason
        ),
    )
    return _with_exit_code(
        info.to_error_response(), DOMAIN_PREFIXES[TranslationErrorCode.__name__]
    )


def _render_run_summary(summary: RunSummary | None, *, console: Console) -> None:
    if summary is None:
        return
    table = Table.grid(padding=(0, 1))
    table.add_column(justify="right", style="bold")
    table.add_column()
    table.add_row("Run ID", str(summary.run_id))
    table.add_row("Status", str(summary.status))
    table.add_row(
        "Translated", f"{summary.translated_lines}/{summary.candidate_lines} lines"
    )
    table.add_row(
        "Batches", f"{summary.batch_count} ({summary.failed_batch_count} failed)"
    )
    if summary.failed_line_indices:
        shown = [str(index + 1) for index in summary.failed_line_indices]
        text = ", ".join(shown[:_FAILED_LINES_SHOWN])
        if len(shown) > _FAILED_LINES_SHOWN:
            text = f"{text}, ..."
        table.add_row("Failed lines", text)
    if summary.warnings:
        table.add_row("Demoted lines", str(len(summary.warnings)))
    table.add_row("Output", summary.output_path or "n/a")
    console.print(Panel(table, title="linetl translate", expand=False))


def _render_run_error(error: ErrorResponse, *, console: Console) -> None:
    console.print(f"[red]Error:[/red] {error.message}")


def _exit_for(response: ApiResponse[ResponseT]) -> None:
    if response.error is None:
        return
    exit_code = response.error.exit_code or ExitCode.RUNTIME_ERROR
    raise typer.Exit(code=exit_code)


def _error_response(error: ErrorResponse) -> ApiResponse[ResponseT]:
    return ApiResponse(
        data=None,
        error=error,
        meta=MetaInfo(timestamp=_now_timestamp()),
    )


def _build_error(
    code: str,
    message: str,
    *,
    details: ErrorDetails | None = None,
    domain: str | None = None,
) -> ErrorResponse:
    return _with_exit_code(
        ErrorResponse(code=code, message=message, details=details), domain
    )


def _with_exit_code(error: ErrorResponse, domain: str | None = None) -> ErrorResponse:
    exit_code = resolve_exit_code(error.code, domain=domain)
    return error.model_copy(update={"exit_code": int(exit_code)})


def _error_from_exception(exc: Exception) -> ErrorResponse:
    if isinstance(exc, TranslationError):
        return _with_exit_code(
            exc.info.to_error_response(),
            DOMAIN_PREFIXES[TranslationErrorCode.__name__],
        )
    if isinstance(exc, DocumentError):
        return _with_exit_code(
            exc.info.to_error_response(), DOMAIN_PREFIXES[DocumentErrorCode.__name__]
        )
    if isinstance(exc, ValidationError):
        message = "Config validation failed"
        errors = exc.errors()
        if errors:
            first = errors[0]
            loc = first.get("loc", [])
            label = ".".join(str(part) for part in loc) if loc else ""
            detail = first.get("msg", "")
            if label and detail:
                message = f"Config validation failed: {label} - {detail}"
            elif detail:
                message = f"Config validation failed: {detail}"
        return _build_error("validation_error", message)
    if isinstance(exc, _ConfigError):
        return _build_error("config_error", str(exc))
    if isinstance(exc, ValueError):
        return _build_error("validation_error", str(exc))
    return _build_error("runtime_error", str(exc) or type(exc).__name__)


if __name__ == "__main__":
    app()
