"""Unit tests for batch prompt construction."""

from __future__ import annotations

from linetl_core.prompts import PromptBuilder, format_numbered_lines
from linetl_core.records import Batch, LineRecord
from linetl_schemas.llm import ChatMessage
from linetl_schemas.primitives import ChatRole


def test_numbered_lines_are_one_based() -> None:
    """Texts are numbered from one, each on its own line."""
    assert format_numbered_lines(["甲", "乙"]) == "(1) 甲\n(2) 乙\n"


def test_default_system_prompt_names_languages() -> None:
    """Without a template a system message is generated."""
    messages = PromptBuilder("ja", "zh").build_for_texts(["猫"])
    assert [message.role for message in messages] == [ChatRole.SYSTEM, ChatRole.USER]
    assert "from ja to zh" in messages[0].content
    assert messages[1].content == "(1) 猫\n"


def test_template_messages_precede_batch() -> None:
    """A loaded template replaces the default system prompt."""
    template = [
        ChatMessage(role=ChatRole.SYSTEM, content="Translate game dialogue."),
        ChatMessage(role=ChatRole.USER, content="(1) はい\n"),
        ChatMessage(role=ChatRole.ASSISTANT, content="(1) 是\n"),
    ]
    builder = PromptBuilder("ja", "zh", template)
    batch = Batch(
        id=0,
        members=[
            LineRecord(index=4, raw="  いいえ", matched=True, captured="いいえ"),
        ],
        estimated_tokens=7,
    )
    messages = builder.build(batch)
    assert messages[:3] == template
    assert messages[3].content == "(1) いいえ\n"
    assert len(builder.preamble) == 3
