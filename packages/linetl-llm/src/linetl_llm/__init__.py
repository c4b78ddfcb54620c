"""LLM runtime adapters for linetl."""

from linetl_llm.errors import classify_error
from linetl_llm.openai_runtime import OpenAICompatibleRuntime, build_message_history
from linetl_llm.provider_factory import ProviderFactoryError, create_model

__all__ = [
    "OpenAICompatibleRuntime",
    "ProviderFactoryError",
    "build_message_history",
    "classify_error",
    "create_model",
]
