"""Flat-file implementation of the vector-store abstraction.

The store is one two-column CSV table::

    Text,Text embedding
    "Paris is the capital of France.","[0.0123, -0.0456, ...]"

Column 2 holds the JSON encoding of the vector.  ``json`` writes floats
with their shortest round-tripping ``repr``, so values load back exactly.

Writers are serialized per file and publish a complete copy of the table
with :func:`os.replace`; readers therefore always see a whole snapshot,
either the one before or the one after a concurrent append.
"""

from __future__ import annotations

import csv
import json
import logging
import math
import os
import tempfile
import threading
from collections.abc import Sequence
from pathlib import Path

from docchat.errors import EmptyStoreError, StoreCorruptedError, StoreError, StoreNotFoundError
from docchat.retrieval.base import VectorStoreBase
from docchat.retrieval.models import EmbeddingVector, VectorRecord

logger = logging.getLogger(__name__)

HEADER: tuple[str, str] = ("Text", "Text embedding")

_locks: dict[Path, threading.Lock] = {}
_locks_guard = threading.Lock()


def _writer_lock(path: Path) -> threading.Lock:
    """Return the process-wide write lock for *path*."""
    key = path.resolve()
    with _locks_guard:
        return _locks.setdefault(key, threading.Lock())


def serialize_vector(vector: Sequence[float]) -> str:
    try:
        return json.dumps([float(x) for x in vector], allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise StoreError(f"Vector cannot be serialized: {exc}") from exc


def deserialize_vector(raw: str) -> EmbeddingVector:
    try:
        values = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StoreCorruptedError(f"Undecodable vector {raw[:40]!r}: {exc}") from exc
    if not isinstance(values, list) or not values:
        raise StoreCorruptedError(f"Vector must be a non-empty list, got {raw[:40]!r}")
    vector: EmbeddingVector = []
    for value in values:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise StoreCorruptedError(f"Vector contains a non-numeric value: {value!r}")
        vector.append(float(value))
    return vector


class CsvVectorStore(VectorStoreBase):
    """Single-table vector store backed by a CSV file.

    Parameters
    ----------
    path:
        File location.  Parent directories are created on first write.
    """

    # -- VectorStoreBase overrides --------------------------------------------

    def exists(self) -> bool:
        return self.path.is_file()

    def append_all(self, records: Sequence[VectorRecord], *, skip_existing: bool = False) -> int:
        new_dim = self._batch_dimension(records)
        new_rows = [(r.text, serialize_vector(r.vector)) for r in records]

        with _writer_lock(self.path):
            existing = self._read_rows() if self.exists() else []
            if skip_existing:
                seen = {text for text, _ in existing}
                unique: list[tuple[str, str]] = []
                for row in new_rows:
                    if row[0] not in seen:
                        seen.add(row[0])
                        unique.append(row)
                new_rows = unique
            if existing and new_rows and new_dim is not None:
                stored_dim = len(deserialize_vector(existing[0][1]))
                if stored_dim != new_dim:
                    raise StoreCorruptedError(
                        f"Cannot append {new_dim}-d vectors to a store of {stored_dim}-d vectors"
                    )
            self._publish(existing + new_rows)

        logger.info("Appended %d records to %s (%d total)", len(new_rows), self.path, len(existing) + len(new_rows))
        return len(new_rows)

    def load_all(self) -> dict[str, EmbeddingVector]:
        if not self.exists():
            raise StoreNotFoundError(str(self.path))

        rows = self._read_rows()
        if not rows:
            raise EmptyStoreError(str(self.path))

        table: dict[str, EmbeddingVector] = {}
        dim: int | None = None
        for lineno, (text, raw) in enumerate(rows, start=2):
            vector = deserialize_vector(raw)
            if dim is None:
                dim = len(vector)
            elif len(vector) != dim:
                raise StoreCorruptedError(
                    f"Row {lineno} of {self.path} has {len(vector)} dimensions, expected {dim}"
                )
            table[text] = vector

        logger.debug("Loaded %d records (%d rows) from %s", len(table), len(rows), self.path)
        return table

    # -- internals ------------------------------------------------------------

    @staticmethod
    def _batch_dimension(records: Sequence[VectorRecord]) -> int | None:
        dims = {r.dimension for r in records}
        if 0 in dims:
            raise StoreError("Cannot store an empty vector")
        if len(dims) > 1:
            raise StoreError(f"Records in one batch have mixed dimensions: {sorted(dims)}")
        return dims.pop() if dims else None

    def _read_rows(self) -> list[tuple[str, str]]:
        """Return the raw data rows, header excluded."""
        try:
            with open(self.path, newline="", encoding="utf-8") as fh:
                reader = csv.reader(fh)
                header = next(reader, None)
                if header is None:
                    return []
                if tuple(header) != HEADER:
                    raise StoreCorruptedError(f"Unexpected header in {self.path}: {header!r}")

                rows: list[tuple[str, str]] = []
                for row in reader:
                    if not row:
                        continue
                    if len(row) != 2:
                        raise StoreCorruptedError(
                            f"Row {reader.line_num} of {self.path} has {len(row)} columns, expected 2"
                        )
                    rows.append((row[0], row[1]))
                return rows
        except FileNotFoundError as exc:
            raise StoreNotFoundError(str(self.path)) from exc
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            raise StoreCorruptedError(f"Cannot read {self.path}: {exc}") from exc

    def _publish(self, rows: list[tuple[str, str]]) -> None:
        """Write *rows* under the header to a temp file, then swap it in."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as fh:
                writer = csv.writer(fh)
                writer.writerow(HEADER)
                writer.writerows(rows)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise StoreError(f"Cannot write {self.path}: {exc}") from exc
