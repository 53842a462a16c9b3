"""Document loaders — turn uploaded files into ordered text fragments."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from docchat.errors import ExtractionError
from docchat.retrieval.models import Fragment

logger = logging.getLogger(__name__)

PDF_EXTENSIONS = {".pdf"}
TEXT_EXTENSIONS = {".txt", ".md", ".markdown"}
SUPPORTED_EXTENSIONS = PDF_EXTENSIONS | TEXT_EXTENSIONS


def _to_fragments(items: Sequence[str], source: str) -> list[Fragment]:
    """Split *items* on line breaks and keep the non-blank pieces in order."""
    fragments: list[Fragment] = []
    for item in items:
        for line in item.splitlines():
            if line.strip():
                fragments.append(Fragment(text=line, source=source, position=len(fragments)))
    return fragments


def load_pdf(path: str | Path) -> list[Fragment]:
    """Extract one fragment per text item of a PDF, in page order.

    Each text-showing operation reported by ``pypdf`` counts as one item.
    """
    items: list[str] = []

    def _collect(text: str, *_args) -> None:
        if text:
            items.append(text)

    try:
        reader = PdfReader(str(path))
        for page in reader.pages:
            page.extract_text(visitor_text=_collect)
    except (PyPdfError, OSError, ValueError, KeyError) as exc:
        raise ExtractionError(str(path), str(exc) or type(exc).__name__) from exc

    return _to_fragments(items, str(path))


def load_text(path: str | Path) -> list[Fragment]:
    """Load a plain-text or Markdown file, one fragment per non-blank line."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ExtractionError(str(path), str(exc)) from exc
    return _to_fragments([content], str(path))


def extract_fragments(path: str | Path) -> list[Fragment]:
    """Dispatch on file extension and return the document's fragments.

    Raises
    ------
    ExtractionError
        The file is missing, unsupported, or unreadable.
    """
    path = Path(path)
    if not path.is_file():
        raise ExtractionError(str(path), "file not found")

    suffix = path.suffix.lower()
    if suffix in PDF_EXTENSIONS:
        fragments = load_pdf(path)
    elif suffix in TEXT_EXTENSIONS:
        fragments = load_text(path)
    else:
        raise ExtractionError(
            str(path), f"unsupported extension {suffix or '<none>'!r}; expected one of {sorted(SUPPORTED_EXTENSIONS)}"
        )

    logger.info("Extracted %d fragments from %s", len(fragments), path)
    return fragments


async def extract_all(paths: Sequence[str | Path], extractor=extract_fragments) -> list[Fragment]:
    """Extract every document concurrently and concatenate in input order.

    Extraction runs on the default executor, one job per document.  The
    first failure propagates and the remaining results are discarded.
    """
    loop = asyncio.get_running_loop()
    jobs = [loop.run_in_executor(None, extractor, p) for p in paths]
    try:
        per_document = await asyncio.gather(*jobs)
    except BaseException:
        for job in jobs:
            job.cancel()
        raise

    return [fragment for fragments in per_document for fragment in fragments]
