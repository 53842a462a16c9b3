"""
Retrieval — vector storage, similarity ranking, and the shared data models.

Public surface
--------------
- :class:`VectorStoreBase` — abstract flat-table backend.
- :class:`CsvVectorStore` — default file-backed store.
- :func:`rank`, :func:`cosine_similarity` — linear-scan ranking.
- :class:`Fragment`, :class:`VectorRecord`, :class:`ScoredCandidate` — data models.
"""

from docchat.retrieval.base import VectorStoreBase
from docchat.retrieval.csv_store import CsvVectorStore
from docchat.retrieval.models import (
    AnswerResult,
    ChatMessage,
    Fragment,
    IngestResult,
    ScoredCandidate,
    VectorRecord,
)
from docchat.retrieval.ranker import cosine_similarity, rank

__all__ = [
    "AnswerResult",
    "ChatMessage",
    "CsvVectorStore",
    "Fragment",
    "IngestResult",
    "ScoredCandidate",
    "VectorRecord",
    "VectorStoreBase",
    "cosine_similarity",
    "rank",
]
