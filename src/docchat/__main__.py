"""Command-line entry point.

Usage::

    python -m docchat ingest uploads/handbook.pdf uploads/faq.txt
    python -m docchat ask "Who approves travel requests?"
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from docchat.errors import DocChatError
from docchat.pipeline import RagPipeline

log = logging.getLogger("docchat")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docchat", description="Chat with your documents")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Extract, embed, and store documents")
    ingest.add_argument("paths", nargs="+", help="PDF, text, or Markdown files")

    ask = sub.add_parser("ask", help="Answer a question from the stored documents")
    ask.add_argument("question", help="Question to answer")
    ask.add_argument("--show-context", action="store_true", help="Print the retrieved fragments")
    return parser


async def _run(args: argparse.Namespace, pipeline: RagPipeline) -> None:
    if args.command == "ingest":
        result = await pipeline.ingest(args.paths)
        print(
            f"Stored {result.records_written} new fragments → {result.store_path} "
            f"({result.duplicates_skipped} duplicates skipped)"
        )
    else:
        result = await pipeline.answer([{"role": "user", "content": args.question}])
        if args.show_context:
            for candidate in result.context:
                print(f"[{candidate.score:.3f}] {candidate.text}")
        print(result.message.content)


def main(argv: list[str] | None = None, pipeline: RagPipeline | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        asyncio.run(_run(args, pipeline or RagPipeline.from_settings()))
    except DocChatError as exc:
        log.error("%s error: %s", exc.kind, exc.message)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
