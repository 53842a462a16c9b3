"""Abstract base class for vector-store backends.

A backend persists ``(text, vector)`` records in one flat table and can
hand the whole table back for an in-memory similarity scan.  The rest of
the pipeline only talks to this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from docchat.errors import EmptyStoreError
from docchat.retrieval.models import EmbeddingVector, VectorRecord


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    path:
        Location of the single store for this deployment.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def exists(self) -> bool:
        """Return ``True`` when the store has been created."""
        ...

    @abstractmethod
    def append_all(self, records: Sequence[VectorRecord], *, skip_existing: bool = False) -> int:
        """Durably append *records*, creating the store if absent.

        Either every record is written or none is.  With *skip_existing*,
        records whose text is already stored (or repeated in the batch) are
        dropped while the write lock is held.  Returns the number of
        records written.
        """
        ...

    @abstractmethod
    def load_all(self) -> dict[str, EmbeddingVector]:
        """Read the entire store into an insertion-ordered mapping.

        Raises
        ------
        StoreNotFoundError
            The store has never been written.
        EmptyStoreError
            The store exists but holds no records.
        """
        ...

    # -- optional overrides ---------------------------------------------------

    def known_texts(self) -> set[str]:
        """Texts already stored; empty when the store does not exist yet."""
        if not self.exists():
            return set()
        try:
            return set(self.load_all())
        except EmptyStoreError:
            return set()
