"""Error taxonomy for ingestion and answering.

Every failure that crosses the :class:`~docchat.pipeline.RagPipeline`
boundary is a :class:`DocChatError` subclass carrying a ``kind`` tag, so
callers (the HTTP layer, the CLI, tests) can tell a permanent input
problem from a transient upstream outage without parsing messages.

Kinds
-----
- ``input`` — empty document batch, malformed conversation.
- ``extraction`` — unreadable, corrupt, or unsupported document.
- ``upstream`` — embedding or completion service failed.
- ``store`` — vector store missing, empty, or unreadable.
- ``numeric`` — vectors that cannot be compared.
"""

from __future__ import annotations


class DocChatError(Exception):
    """Base class for every tagged failure."""

    kind: str = "internal"
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, object]:
        return {"kind": self.kind, "message": self.message, "retryable": self.retryable}


class InputValidationError(DocChatError):
    kind = "input"


class ExtractionError(DocChatError):
    """A document could not be turned into fragments."""

    kind = "extraction"

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Could not extract text from {source!r}: {reason}")
        self.source = source


class UpstreamServiceError(DocChatError):
    """The embedding or completion service failed."""

    kind = "upstream"
    retryable = True

    def __init__(self, service: str, reason: str) -> None:
        super().__init__(f"{service} service failed: {reason}")
        self.service = service


class StoreError(DocChatError):
    kind = "store"


class StoreNotFoundError(StoreError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Vector store not found at {path!r}; ingest documents first")
        self.path = path


class EmptyStoreError(StoreError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Vector store at {path!r} contains no records")
        self.path = path


class StoreCorruptedError(StoreError):
    pass


class SimilarityError(DocChatError):
    kind = "numeric"
