"""Embedding client — one request per fragment against an OpenAI-compatible API."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from langchain_openai import OpenAIEmbeddings

from docchat.config import Settings, settings
from docchat.errors import UpstreamServiceError
from docchat.retrieval.models import EmbeddingVector, Fragment, VectorRecord

logger = logging.getLogger(__name__)


class EmbeddingClient(ABC):
    """Turns one text into one vector."""

    @abstractmethod
    async def embed_one(self, text: str) -> EmbeddingVector:
        ...


class OpenAIEmbeddingClient(EmbeddingClient):
    """Embedding client backed by :class:`langchain_openai.OpenAIEmbeddings`.

    When ``llm_base_url`` is set the client targets that OpenAI-compatible
    endpoint instead of the OpenAI cloud API.
    """

    def __init__(self, config: Settings = settings) -> None:
        kwargs: dict = {"model": config.embedding_model}
        if config.openai_organization:
            kwargs["organization"] = config.openai_organization
        if config.llm_base_url:
            logger.info("Using embedding endpoint: %s", config.llm_base_url)
            kwargs["base_url"] = config.llm_base_url
            # Local endpoints do not need a real key; the client requires a non-empty value.
            kwargs["api_key"] = config.openai_api_key or "EMPTY"
            kwargs["check_embedding_ctx_length"] = False
        else:
            kwargs["api_key"] = config.openai_api_key
        self.model = config.embedding_model
        self._embeddings = OpenAIEmbeddings(**kwargs)

    async def embed_one(self, text: str) -> EmbeddingVector:
        try:
            vector = await self._embeddings.aembed_query(text)
        except Exception as exc:
            raise UpstreamServiceError("embedding", str(exc) or type(exc).__name__) from exc
        return [float(x) for x in vector]


async def embed_fragments(client: EmbeddingClient, fragments: Sequence[Fragment]) -> list[VectorRecord]:
    """Embed *fragments* one at a time, in order.

    The first failure aborts the batch; no partial result is returned.

    Raises
    ------
    UpstreamServiceError
        A call failed, or the service returned an empty vector or a vector
        whose dimension differs from the rest of the batch.
    """
    records: list[VectorRecord] = []
    dim: int | None = None
    for i, fragment in enumerate(fragments):
        logger.debug("Embedding fragment %d/%d (%d chars)", i + 1, len(fragments), len(fragment.text))
        try:
            vector = await client.embed_one(fragment.text)
        except Exception as exc:
            reason = exc.message if isinstance(exc, UpstreamServiceError) else str(exc) or type(exc).__name__
            raise UpstreamServiceError("embedding", f"fragment {i} of {len(fragments)}: {reason}") from exc

        if not vector:
            raise UpstreamServiceError("embedding", f"empty vector for fragment {i}")
        if dim is None:
            dim = len(vector)
        elif len(vector) != dim:
            raise UpstreamServiceError(
                "embedding", f"fragment {i} has {len(vector)} dimensions, expected {dim}"
            )
        records.append(VectorRecord(text=fragment.text, vector=vector))

    logger.info("Embedded %d fragments (dim=%s)", len(records), dim)
    return records
