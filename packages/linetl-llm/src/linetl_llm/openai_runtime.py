"""OpenAI-compatible chat runtime powered by pydantic-ai."""

from __future__ import annotations

from collections.abc import Sequence
from typing import cast

from pydantic_ai import Agent
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelRequestPart,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    UserPromptPart,
)
from pydantic_ai.settings import ModelSettings

from linetl_core.ports.llm import ChatRuntimeProtocol
from linetl_llm.errors import classify_error
from linetl_llm.provider_factory import create_model
from linetl_schemas.llm import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    LlmEndpointTarget,
)
from linetl_schemas.primitives import ChatRole


class OpenAICompatibleRuntime(ChatRuntimeProtocol):
    """Chat runtime for OpenAI-compatible endpoints."""

    async def run_chat(
        self, request: ChatRequest, *, endpoint: LlmEndpointTarget
    ) -> ChatResponse:
        """Execute a chat request using the endpoint's credential.

        The final user message is the prompt; earlier messages become the
        conversation history.

        Returns:
            ChatResponse: Raw model output.

        Raises:
            LlmRequestError: Classified request failure.
            ValueError: If the request does not end with a user message.
        """
        *history, prompt = request.messages
        if prompt.role != ChatRole.USER:
            raise ValueError("chat request must end with a user message")
        model, model_settings = create_model(endpoint=endpoint, model=request.model)
        agent = Agent(model)
        try:
            result = await agent.run(
                prompt.content,
                message_history=build_message_history(history),
                model_settings=cast(ModelSettings, model_settings),
            )
        except Exception as exc:
            error = classify_error(exc)
            if error is None:
                raise
            raise error from exc
        return ChatResponse(
            model_id=request.model.model_id, output_text=str(result.output)
        )


def build_message_history(messages: Sequence[ChatMessage]) -> list[ModelMessage]:
    """Convert chat messages to pydantic-ai message history.

    Consecutive system and user messages are grouped into one request;
    assistant messages become model responses.

    Args:
        messages: Template messages in order.

    Returns:
        list[ModelMessage]: Message history for ``Agent.run``.
    """
    history: list[ModelMessage] = []
    parts: list[ModelRequestPart] = []
    for message in messages:
        if message.role == ChatRole.ASSISTANT:
            if parts:
                history.append(ModelRequest(parts=parts))
                parts = []
            history.append(ModelResponse(parts=[TextPart(content=message.content)]))
        elif message.role == ChatRole.SYSTEM:
            parts.append(SystemPromptPart(content=message.content))
        else:
            parts.append(UserPromptPart(content=message.content))
    if parts:
        history.append(ModelRequest(parts=parts))
    return history
