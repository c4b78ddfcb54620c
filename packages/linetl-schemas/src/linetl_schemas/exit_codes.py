"""CLI exit code taxonomy and error-to-exit-code registry.

Exit code ranges:
- 0: Success
- 10-19: Client/input errors (config, validation)
- 20-29: Processing errors (incomplete translation, documents)
- 30-39: External service errors (connection, credential pool)
- 99: Unexpected runtime errors
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """CLI exit codes by failure category."""

    SUCCESS = 0
    CONFIG_ERROR = 10
    VALIDATION_ERROR = 11
    TRANSLATION_INCOMPLETE = 20
    INPUT_ERROR = 21
    OUTPUT_ERROR = 22
    CONNECTION_ERROR = 30
    RUNTIME_ERROR = 99


# Domain error codes are qualified with a domain prefix; CLI-level codes are
# stored without one.
ERROR_CODE_TO_EXIT_CODE: dict[str, ExitCode] = {
    # --- CLI-level codes (no prefix) ---
    "config_error": ExitCode.CONFIG_ERROR,
    "validation_error": ExitCode.VALIDATION_ERROR,
    "runtime_error": ExitCode.RUNTIME_ERROR,
    # --- Translation domain ---
    "translation.invalid_config": ExitCode.CONFIG_ERROR,
    "translation.no_credentials": ExitCode.CONFIG_ERROR,
    "translation.batches_failed": ExitCode.TRANSLATION_INCOMPLETE,
    "translation.cancelled": ExitCode.TRANSLATION_INCOMPLETE,
    "translation.pool_exhausted": ExitCode.CONNECTION_ERROR,
    # --- Document domain ---
    "document.not_found": ExitCode.INPUT_ERROR,
    "document.read_error": ExitCode.INPUT_ERROR,
    "document.decode_error": ExitCode.INPUT_ERROR,
    "document.write_error": ExitCode.OUTPUT_ERROR,
    "document.prompt_error": ExitCode.CONFIG_ERROR,
    # --- Connection domain ---
    "connection.all_failed": ExitCode.CONNECTION_ERROR,
}

DOMAIN_PREFIXES: dict[str, str] = {
    "TranslationErrorCode": "translation",
    "DocumentErrorCode": "document",
}


def resolve_exit_code(error_code: str, *, domain: str | None = None) -> ExitCode:
    """Resolve an error code string to its ExitCode.

    Args:
        error_code: The error code string (e.g. "validation_error",
            "pool_exhausted").
        domain: Optional domain prefix (e.g. "translation", "document").
            When provided, the lookup uses ``"{domain}.{error_code}"``
            first, falling back to an unqualified lookup.

    Returns:
        The matching ExitCode, or RUNTIME_ERROR if no mapping is found.
    """
    if domain:
        qualified = f"{domain}.{error_code}"
        if qualified in ERROR_CODE_TO_EXIT_CODE:
            return ERROR_CODE_TO_EXIT_CODE[qualified]

    if error_code in ERROR_CODE_TO_EXIT_CODE:
        return ERROR_CODE_TO_EXIT_CODE[error_code]

    return ExitCode.RUNTIME_ERROR
