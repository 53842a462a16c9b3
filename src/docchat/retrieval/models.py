"""Domain models for fragments, stored vectors, and ranked results."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

EmbeddingVector = list[float]


class Fragment(BaseModel):
    """Immutable unit of extracted text.

    Attributes
    ----------
    text:
        The trimmed text of one document content item.  Fragments have no
        identity beyond this value.
    source:
        Path of the document the fragment came from (informational).
    position:
        Ordinal of the fragment within its source document.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    source: str = "unknown"
    position: int | None = None

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("fragment text must not be blank")
        return value


class VectorRecord(BaseModel):
    """A fragment text paired with its embedding."""

    model_config = ConfigDict(frozen=True)

    text: str
    vector: EmbeddingVector

    @property
    def dimension(self) -> int:
        return len(self.vector)


class ScoredCandidate(BaseModel):
    """A stored text with its similarity to the current query."""

    text: str
    score: float = Field(ge=-1.0, le=1.0)


class ChatMessage(BaseModel):
    """One conversation turn."""

    role: str
    content: str


class AnswerResult(BaseModel):
    """Assistant reply together with the evidence used to produce it."""

    message: ChatMessage
    context: list[ScoredCandidate] = Field(default_factory=list)
    prompt: str = ""


class IngestResult(BaseModel):
    """Outcome of one ingestion batch."""

    success: Literal[True] = True
    store_path: str
    fragments_extracted: int = 0
    records_written: int = 0
    duplicates_skipped: int = 0
