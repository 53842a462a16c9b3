"""Retrieval pipeline — ingestion and question answering.

Usage::

    from docchat.pipeline import RagPipeline

    pipeline = RagPipeline.from_settings()
    await pipeline.ingest(["uploads/handbook.pdf"])
    result = await pipeline.answer([{"role": "user", "content": "Who owns X?"}])
    print(result.message.content)

Ingestion is all-or-nothing: documents are extracted concurrently,
fragments are embedded one by one, and the store is written once at the
end.  Nothing is persisted if any step fails.

Answering reads a snapshot of the whole store, embeds the last message,
ranks every stored fragment by cosine similarity and sends the top-k as
context to the completion model.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from docchat.config import Settings, settings
from docchat.errors import DocChatError, InputValidationError
from docchat.generation.llm import CompletionClient
from docchat.generation.prompts import build_answer_prompt
from docchat.ingestion.embedder import EmbeddingClient, embed_fragments
from docchat.ingestion.loader import extract_all, extract_fragments
from docchat.retrieval.base import VectorStoreBase
from docchat.retrieval.models import AnswerResult, ChatMessage, Fragment, IngestResult
from docchat.retrieval.ranker import rank

logger = logging.getLogger(__name__)


def _parse_conversation(conversation: Sequence[Any]) -> list[ChatMessage]:
    if isinstance(conversation, (str, bytes)) or not isinstance(conversation, Sequence):
        raise InputValidationError("Conversation must be a list of {role, content} messages")
    if not conversation:
        raise InputValidationError("Conversation is empty")
    try:
        return [m if isinstance(m, ChatMessage) else ChatMessage.model_validate(m) for m in conversation]
    except ValidationError as exc:
        raise InputValidationError(f"Malformed conversation message: {exc.errors()[0]['msg']}") from exc


class RagPipeline:
    """Coordinates extraction, embedding, storage, ranking, and completion.

    Parameters
    ----------
    store:
        The deployment's vector store.
    embedder:
        Client for the embedding service.
    completer:
        Client for the completion service.
    config:
        Retrieval knobs (``top_k``, ``context_separator``, ``deduplicate``).
    extractor:
        ``path -> list[Fragment]`` callable, run once per document.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embedder: EmbeddingClient,
        completer: CompletionClient,
        *,
        config: Settings = settings,
        extractor: Callable[[str | Path], list[Fragment]] = extract_fragments,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.completer = completer
        self.config = config
        self.extractor = extractor

    @classmethod
    def from_settings(cls, config: Settings = settings) -> RagPipeline:
        """Wire the production OpenAI clients and the CSV store."""
        from docchat.generation.llm import OpenAICompletionClient
        from docchat.ingestion.embedder import OpenAIEmbeddingClient
        from docchat.retrieval.csv_store import CsvVectorStore

        return cls(
            store=CsvVectorStore(config.store_path),
            embedder=OpenAIEmbeddingClient(config),
            completer=OpenAICompletionClient(config),
            config=config,
        )

    # -- ingestion ------------------------------------------------------------

    async def ingest(self, paths: Sequence[str | Path]) -> IngestResult:
        """Extract, embed, and persist a batch of documents.

        Raises
        ------
        InputValidationError
            *paths* is empty.
        ExtractionError
            Any document could not be read.
        UpstreamServiceError
            Any embedding call failed.
        StoreError
            The store could not be written.
        """
        if isinstance(paths, (str, Path)):
            paths = [paths]
        if not paths:
            raise InputValidationError("No documents to ingest")

        try:
            fragments = await extract_all(paths, extractor=self.extractor)
            pending = self._new_fragments(fragments)
            records = await embed_fragments(self.embedder, pending)
            # Re-checked under the store lock so racing ingestions cannot both append a text.
            write = functools.partial(self.store.append_all, records, skip_existing=self.config.deduplicate)
            written = await asyncio.get_running_loop().run_in_executor(None, write)
        except DocChatError:
            logger.exception("Ingestion of %d document(s) failed; nothing was written", len(paths))
            raise

        result = IngestResult(
            store_path=str(self.store.path),
            fragments_extracted=len(fragments),
            records_written=written,
            duplicates_skipped=len(fragments) - written,
        )
        logger.info(
            "Ingested %d document(s): %d fragments, %d written, %d duplicates skipped",
            len(paths),
            result.fragments_extracted,
            result.records_written,
            result.duplicates_skipped,
        )
        return result

    def _new_fragments(self, fragments: Sequence[Fragment]) -> list[Fragment]:
        """Drop repeated texts, and texts already stored when deduplicating."""
        seen: set[str] = self.store.known_texts() if self.config.deduplicate else set()
        pending: list[Fragment] = []
        for fragment in fragments:
            if fragment.text in seen:
                continue
            seen.add(fragment.text)
            pending.append(fragment)
        return pending

    # -- answering ------------------------------------------------------------

    async def answer(self, conversation: Sequence[Mapping[str, Any] | ChatMessage]) -> AnswerResult:
        """Answer the last message of *conversation* from stored context.

        Raises
        ------
        InputValidationError
            The conversation is empty, malformed, or ends with a blank message.
        StoreError
            The store is missing, empty, or unreadable.
        UpstreamServiceError
            The embedding or completion call failed.
        SimilarityError
            The query vector does not match the stored dimensionality.
        """
        messages = _parse_conversation(conversation)
        query = messages[-1].content.strip()
        if not query:
            raise InputValidationError("Last message has no content")

        try:
            corpus = self.store.load_all()
            query_vector = await self.embedder.embed_one(query)
            top = rank(query_vector, corpus, k=self.config.top_k)
            prompt = build_answer_prompt([c.text for c in top], query, self.config.context_separator)
            completion = await self.completer.complete(prompt)
        except DocChatError:
            logger.exception("Answering failed for query %r", query[:80])
            raise

        logger.info(
            "Answered query with %d context fragment(s) from %d stored (best score %.3f)",
            len(top),
            len(corpus),
            top[0].score if top else 0.0,
        )
        return AnswerResult(
            message=ChatMessage(role="assistant", content=completion.strip()),
            context=top,
            prompt=prompt,
        )
