"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from docchat.config import Settings
from docchat.errors import UpstreamServiceError
from docchat.generation.llm import CompletionClient
from docchat.ingestion.embedder import EmbeddingClient
from docchat.pipeline import RagPipeline
from docchat.retrieval.csv_store import CsvVectorStore


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes for the external services ────────────────────────────────────

VOCABULARY = ["paris", "capital", "france", "eiffel", "tower", "berlin", "germany", "river"]


class FakeEmbeddingClient(EmbeddingClient):
    """Bag-of-words embedding over :data:`VOCABULARY`.

    ``fail_on`` makes the n-th call (1-based) raise, like an upstream outage.
    """

    def __init__(self, fail_on: int | None = None) -> None:
        self.calls: list[str] = []
        self.fail_on = fail_on

    async def embed_one(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail_on is not None and len(self.calls) == self.fail_on:
            raise UpstreamServiceError("embedding", "rate limited")
        words = re.findall(r"[a-z]+", text.lower())
        return [float(words.count(term)) for term in VOCABULARY]


class FakeCompletionClient(CompletionClient):
    """Records prompts and returns a canned (padded) answer."""

    def __init__(self, answer: str = "  Paris.  ", error: Exception | None = None) -> None:
        self.prompts: list[str] = []
        self.answer = answer
        self.error = error

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer


def make_pdf(lines: list[str]) -> bytes:
    """Build a one-page PDF with one text item per entry of *lines*."""

    def _escape(text: str) -> str:
        return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")

    stream = "\n".join(
        f"BT /F1 12 Tf 72 {720 - 24 * i} Td ({_escape(line)}) Tj ET" for i, line in enumerate(lines)
    ).encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_at = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n".encode()
    return bytes(out)


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture()
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        openai_api_key="test-key",
        store_path=str(tmp_path / "embedding" / "embedding.csv"),
        upload_dir=str(tmp_path / "uploads"),
        top_k=3,
        _env_file=None,
    )


@pytest.fixture()
def store(test_settings: Settings) -> CsvVectorStore:
    return CsvVectorStore(test_settings.store_path)


@pytest.fixture()
def embedder() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture()
def completer() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture()
def pipeline(
    store: CsvVectorStore,
    embedder: FakeEmbeddingClient,
    completer: FakeCompletionClient,
    test_settings: Settings,
) -> RagPipeline:
    return RagPipeline(store, embedder, completer, config=test_settings)


@pytest.fixture()
def paris_pdf(tmp_path: Path) -> Path:
    path = tmp_path / "paris.pdf"
    path.write_bytes(make_pdf(["Paris is the capital of France.", "The Eiffel Tower is in Paris."]))
    return path
