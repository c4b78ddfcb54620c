"""Common pytest configuration."""

from __future__ import annotations

import copy

import pytest

from linetl_schemas.config import RunConfig
from linetl_schemas.primitives import JsonValue
from linetl_schemas.validation import validate_run_config

BASE_CONFIG_PAYLOAD: dict[str, JsonValue] = {
    "languages": {"source": "ja", "target": "zh"},
    "extraction": {
        "mode": "replace",
        "filter_patterns": [r"[^\x00-\x7f]"],
        "capture_pattern": r':\s"(.+)"',
        "replace_expression": ': "$trans"',
    },
    "batching": {"max_tokens": 64},
    "dispatch": {
        "max_concurrent": 2,
        "drain_timeout_s": 0.1,
        "credentials": [
            {"name": "primary", "api_key": "sk-test-primary-0000000000000000"},
            {"name": "secondary", "api_key": "sk-test-secondary-000000000000000"},
        ],
    },
    "retry": {"max_attempts": 3, "backoff_s": 0.5, "max_backoff_s": 2.0},
    "cooldown": {"rate_limit_s": 0.0, "transient_s": 0.0},
    "logging": {"sinks": [{"type": "noop"}]},
}


@pytest.fixture
def config_payload() -> dict[str, JsonValue]:
    """Provide a mutable copy of a replace-mode config payload.

    Returns:
        dict[str, JsonValue]: Raw config payload.
    """
    return copy.deepcopy(BASE_CONFIG_PAYLOAD)


@pytest.fixture
def run_config(config_payload: dict[str, JsonValue]) -> RunConfig:
    """Provide a validated replace-mode run configuration.

    Returns:
        RunConfig: Validated configuration.
    """
    return validate_run_config(config_payload)
