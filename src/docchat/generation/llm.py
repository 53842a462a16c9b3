"""Completion model initialisation — single place to swap providers.

Supports two modes:

1. **OpenAI cloud** (default) — set ``OPENAI_API_KEY``.
2. **OpenAI-compatible endpoint** — set ``LLM_BASE_URL`` to a local or
   self-hosted server exposing ``/v1/completions`` (e.g. vLLM).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from langchain_openai import OpenAI

from docchat.config import Settings, settings
from docchat.errors import UpstreamServiceError

logger = logging.getLogger(__name__)


class CompletionClient(ABC):
    """Turns one prompt into one generated text."""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        ...


def get_llm(config: Settings = settings) -> OpenAI:
    """Return the configured completion model.

    Output length is bounded by ``config.completion_max_tokens``.
    """
    kwargs: dict = {
        "model": config.completion_model,
        "max_tokens": config.completion_max_tokens,
        "temperature": config.completion_temperature,
    }
    if config.openai_organization:
        kwargs["organization"] = config.openai_organization

    if config.llm_base_url:
        logger.info("Using completion endpoint: %s", config.llm_base_url)
        kwargs["base_url"] = config.llm_base_url
        # vLLM doesn't need a real key; LangChain requires a non-empty value.
        kwargs["api_key"] = config.openai_api_key or "EMPTY"
    else:
        kwargs["api_key"] = config.openai_api_key

    return OpenAI(**kwargs)


class OpenAICompletionClient(CompletionClient):
    """Completion client backed by :class:`langchain_openai.OpenAI`."""

    def __init__(self, config: Settings = settings) -> None:
        self._llm = get_llm(config)

    async def complete(self, prompt: str) -> str:
        try:
            return await self._llm.ainvoke(prompt)
        except Exception as exc:
            raise UpstreamServiceError("completion", str(exc) or type(exc).__name__) from exc
