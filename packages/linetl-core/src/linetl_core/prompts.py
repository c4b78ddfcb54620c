"""Chat request construction for batches."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from linetl_core.records import Batch
from linetl_schemas.llm import ChatMessage
from linetl_schemas.primitives import ChatRole

DEFAULT_SYSTEM_PROMPT = (
    "You are a professional translator. Translate every numbered line from "
    "{source} to {target}. Reply with exactly one line per input line, keep "
    "each (n) marker and the original order, and do not add commentary."
)


def format_numbered_lines(texts: Iterable[str]) -> str:
    """Render texts as a 1-based numbered list.

    Args:
        texts: Texts in batch order.

    Returns:
        str: One ``(n) text`` line per text, newline terminated.
    """
    return "".join(f"({number}) {text}\n" for number, text in enumerate(texts, 1))


class PromptBuilder:
    """Builds the chat messages sent for a batch."""

    def __init__(
        self,
        source_language: str,
        target_language: str,
        template: Sequence[ChatMessage] | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            source_language: Source language code.
            target_language: Target language code.
            template: Messages placed before the batch; a default system
                prompt is used when omitted.
        """
        if template:
            self._preamble = list(template)
        else:
            self._preamble = [
                ChatMessage(
                    role=ChatRole.SYSTEM,
                    content=DEFAULT_SYSTEM_PROMPT.format(
                        source=source_language, target=target_language
                    ),
                )
            ]

    @property
    def preamble(self) -> list[ChatMessage]:
        """Messages that precede every batch."""
        return list(self._preamble)

    def build(self, batch: Batch) -> list[ChatMessage]:
        """Build the messages for one batch.

        Args:
            batch: Batch to translate.

        Returns:
            list[ChatMessage]: Preamble followed by the numbered user message.
        """
        return self.build_for_texts(batch.texts)

    def build_for_texts(self, texts: Sequence[str]) -> list[ChatMessage]:
        """Build the messages for arbitrary texts.

        Args:
            texts: Texts to translate, in order.

        Returns:
            list[ChatMessage]: Preamble followed by the numbered user message.
        """
        user = ChatMessage(role=ChatRole.USER, content=format_numbered_lines(texts))
        return [*self._preamble, user]
