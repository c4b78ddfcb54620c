"""Unit tests for configuration schema validation."""

import pytest
from pydantic import ValidationError

from linetl_schemas.config import (
    DEFAULT_OUTPUT_RULE_PATTERN,
    CredentialConfig,
    DispatchConfig,
    ExtractionConfig,
    LanguageConfig,
    OutputRuleConfig,
    OutputRuleUsage,
    RetryConfig,
)
from linetl_schemas.primitives import EscapeMode, JsonValue, TranslationMode
from linetl_schemas.validation import validate_prompt_messages, validate_run_config


def test_language_config_rejects_identical_pair() -> None:
    """Ensure the target language must differ from the source."""
    with pytest.raises(ValidationError):
        LanguageConfig(source="ja", target="ja")


def test_language_config_rejects_malformed_code() -> None:
    """Ensure language codes follow the two/three letter format."""
    with pytest.raises(ValidationError):
        LanguageConfig(source="japanese", target="zh")
    config = LanguageConfig(source="ja", target="zh-TW")
    assert config.target == "zh-TW"


def test_extraction_defaults_to_whole_line_text_mode() -> None:
    """Text mode with the bare placeholder is the default."""
    config = ExtractionConfig()
    assert config.mode == TranslationMode.TEXT
    assert config.replace_expression == "$trans"
    assert config.filter_patterns == []
    assert config.trim is True


def test_extraction_replace_mode_requires_capture_group() -> None:
    """Replace mode needs a capture pattern defining a group."""
    with pytest.raises(ValidationError):
        ExtractionConfig(mode=TranslationMode.REPLACE)
    with pytest.raises(ValidationError):
        ExtractionConfig(mode=TranslationMode.REPLACE, capture_pattern=r":\s\".+\"")


def test_extraction_text_mode_rejects_capture_pattern() -> None:
    """A capture pattern is meaningless in text mode."""
    with pytest.raises(ValidationError):
        ExtractionConfig(capture_pattern=r"(.+)")


def test_extraction_rejects_invalid_filter_pattern() -> None:
    """Filter patterns must compile."""
    with pytest.raises(ValidationError):
        ExtractionConfig(filter_patterns=["([unclosed"])


def test_extraction_requires_placeholder_in_expression() -> None:
    """The replace expression must reference the translation."""
    with pytest.raises(ValidationError):
        ExtractionConfig(replace_expression=': "text"')


def test_extraction_line_width_requires_json_escape() -> None:
    """Line wrapping only applies to JSON escaping."""
    with pytest.raises(ValidationError):
        ExtractionConfig(line_width=36)
    config = ExtractionConfig(escape=EscapeMode.JSON, line_width=36)
    assert config.line_width == 36


def test_extraction_keeps_pattern_whitespace() -> None:
    """Patterns and expressions are not stripped."""
    config = ExtractionConfig(
        mode=TranslationMode.REPLACE,
        capture_pattern=r' "(.+)" ',
        replace_expression=' "$trans" ',
    )
    assert config.capture_pattern == r' "(.+)" '
    assert config.replace_expression == ' "$trans" '


def test_output_rule_usage_requires_exactly_one_action() -> None:
    """A rule either replaces or captures."""
    with pytest.raises(ValidationError):
        OutputRuleUsage()
    with pytest.raises(ValidationError):
        OutputRuleUsage(replace="", capture=1)


def test_output_rule_capture_group_must_exist() -> None:
    """A capture group index above the pattern's group count is rejected."""
    with pytest.raises(ValidationError):
        OutputRuleConfig(pattern=r"\((\d+)\)", usage=OutputRuleUsage(capture=2))
    rule = OutputRuleConfig(pattern=r"\((\d+)\)", usage=OutputRuleUsage(capture=0))
    assert rule.usage.capture == 0


def test_credential_requires_one_key_source() -> None:
    """Exactly one of api_key/api_key_env is accepted."""
    with pytest.raises(ValidationError):
        CredentialConfig(name="primary")
    with pytest.raises(ValidationError):
        CredentialConfig(name="primary", api_key="sk-x", api_key_env="OPENAI_KEY")


def test_credential_normalizes_bare_base_url() -> None:
    """A base URL without a path gets the /v1 suffix."""
    config = CredentialConfig(
        name="local", base_url="http://localhost:8000", api_key_env="LOCAL_KEY"
    )
    assert config.base_url == "http://localhost:8000/v1"
    with pytest.raises(ValidationError):
        CredentialConfig(name="bad", base_url="localhost", api_key_env="KEY")


def test_credential_repr_hides_inline_key() -> None:
    """Inline keys never appear in the model repr."""
    config = CredentialConfig(name="primary", api_key="sk-secret-value")
    assert "sk-secret-value" not in repr(config)


def test_dispatch_rejects_duplicate_credential_names() -> None:
    """Credential names are unique."""
    with pytest.raises(ValidationError):
        DispatchConfig(
            credentials=[
                CredentialConfig(name="a", api_key_env="KEY_A"),
                CredentialConfig(name="a", api_key_env="KEY_B"),
            ]
        )


def test_dispatch_requires_positive_concurrency() -> None:
    """At least one request must be allowed in flight."""
    with pytest.raises(ValidationError):
        DispatchConfig(
            max_concurrent=0,
            credentials=[CredentialConfig(name="a", api_key_env="KEY_A")],
        )


def test_retry_config_rejects_ceiling_below_base() -> None:
    """The backoff ceiling cannot undercut the first delay."""
    with pytest.raises(ValidationError):
        RetryConfig(backoff_s=5.0, max_backoff_s=1.0)


def test_run_config_default_output_rule_captures_markers(
    config_payload: dict[str, JsonValue],
) -> None:
    """Without explicit rules the numbered-marker capture rule is used."""
    config = validate_run_config(config_payload)
    assert len(config.output_rules) == 1
    assert config.output_rules[0].pattern == DEFAULT_OUTPUT_RULE_PATTERN
    assert config.output_rules[0].usage.capture == 1


def test_run_config_accepts_toml_style_payload(
    config_payload: dict[str, JsonValue],
) -> None:
    """Enum strings and nested tables validate in lax mode."""
    config_payload["extraction"] = {
        "mode": "replace",
        "capture_pattern": r':\s"(.+)"',
        "replace_expression": ': "$trans"',
        "escape": "json",
        "line_width": 36,
    }
    config_payload["output_rules"] = [
        {"pattern": r"\n[^\n\(]", "usage": {"replace": ""}},
        {"pattern": r"\(\d+\)\s?(.+)", "usage": {"capture": 1}},
    ]
    config = validate_run_config(config_payload)
    assert config.extraction.escape == EscapeMode.JSON
    assert config.output_rules[0].usage.replace == ""
    assert config.dispatch.credentials[0].name == "primary"


def test_run_config_requires_dispatch(config_payload: dict[str, JsonValue]) -> None:
    """A run cannot start without credentials."""
    del config_payload["dispatch"]
    with pytest.raises(ValidationError):
        validate_run_config(config_payload)


def test_validate_prompt_messages_coerces_roles() -> None:
    """Prompt templates accept plain role strings."""
    messages = validate_prompt_messages([
        {"role": "system", "content": "Translate faithfully."},
        {"role": "assistant", "content": "Understood."},
    ])
    assert [message.role for message in messages] == ["system", "assistant"]
    with pytest.raises(ValidationError):
        validate_prompt_messages([{"role": "narrator", "content": "x"}])
