"""Provider/model factory for OpenAI-compatible endpoints.

All provider and model instantiation goes through create_model() so that
every request carries the credential's key, base URL and organization.
"""

from __future__ import annotations

import logging

from openai import AsyncOpenAI
from pydantic_ai.models import cached_async_http_client
from pydantic_ai.models.openai import OpenAIChatModel, OpenAIChatModelSettings
from pydantic_ai.providers.openai import OpenAIProvider

from linetl_schemas.config import ModelSettings
from linetl_schemas.llm import LlmEndpointTarget

_log = logging.getLogger(__name__)


class ProviderFactoryError(Exception):
    """Raised when provider/model creation fails validation."""


def create_model(
    *, endpoint: LlmEndpointTarget, model: ModelSettings
) -> tuple[OpenAIChatModel, OpenAIChatModelSettings]:
    """Create the model and per-request settings for one endpoint.

    The OpenAI client is built with ``max_retries=0``; retries and credential
    rotation belong to the dispatcher. Every client shares pydantic-ai's cached
    HTTP connection pool.

    Args:
        endpoint: Resolved endpoint target.
        model: Model settings.

    Returns:
        tuple[OpenAIChatModel, OpenAIChatModelSettings]: Model and settings.

    Raises:
        ProviderFactoryError: If the model identifier is blank.
    """
    model_id = model.model_id.strip()
    if not model_id:
        raise ProviderFactoryError("model_id must not be blank")
    client = AsyncOpenAI(
        api_key=endpoint.api_key,
        base_url=endpoint.base_url,
        organization=endpoint.organization,
        timeout=endpoint.timeout_s,
        max_retries=0,
        http_client=cached_async_http_client(provider="openai"),
    )
    provider = OpenAIProvider(openai_client=client)
    chat_model = OpenAIChatModel(model_id, provider=provider)
    settings: OpenAIChatModelSettings = {
        "temperature": model.temperature,
        "top_p": model.top_p,
        "presence_penalty": model.presence_penalty,
        "frequency_penalty": model.frequency_penalty,
        "timeout": endpoint.timeout_s,
    }
    if model.max_output_tokens is not None:
        settings["max_tokens"] = model.max_output_tokens
    _log.debug(
        "Created model %s for credential %s at %s",
        model_id,
        endpoint.credential,
        endpoint.base_url,
    )
    return chat_model, settings
