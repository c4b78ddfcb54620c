"""Unit tests for prompt template loading."""

import asyncio
import json
from pathlib import Path

import pytest

from linetl_core.ports.document import DocumentError, DocumentErrorCode
from linetl_io import load_prompt_template
from linetl_schemas.primitives import ChatRole


def test_loads_messages_verbatim(tmp_path: Path) -> None:
    """Template content keeps its whitespace."""
    path = tmp_path / "prompt.json"
    path.write_text(
        json.dumps(
            [
                {"role": "system", "content": "Translate ja to zh.\n"},
                {"role": "user", "content": "(1) はい\n"},
                {"role": "assistant", "content": "(1) 是\n"},
            ],
            ensure_ascii=False,
        ),
        encoding="utf-8",
    )

    messages = asyncio.run(load_prompt_template(path))

    assert [message.role for message in messages] == [
        ChatRole.SYSTEM,
        ChatRole.USER,
        ChatRole.ASSISTANT,
    ]
    assert messages[0].content == "Translate ja to zh.\n"


@pytest.mark.parametrize(
    "content",
    [
        "[{",
        '{"role": "system", "content": "x"}',
        '[{"role": "narrator", "content": "x"}]',
        '[{"role": "user", "content": ""}]',
    ],
)
def test_invalid_templates_are_prompt_errors(tmp_path: Path, content: str) -> None:
    """Malformed templates raise prompt errors with the file path."""
    path = tmp_path / "prompt.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(DocumentError) as exc_info:
        asyncio.run(load_prompt_template(path))
    info = exc_info.value.info
    assert info.code == DocumentErrorCode.PROMPT_ERROR
    assert info.details is not None
    assert info.details.path == str(path)


def test_missing_template(tmp_path: Path) -> None:
    """A missing template is reported as a prompt error."""
    with pytest.raises(DocumentError) as exc_info:
        asyncio.run(load_prompt_template(tmp_path / "absent.json"))
    assert exc_info.value.info.code == DocumentErrorCode.PROMPT_ERROR
