"""Unit tests for the command-line entry point."""

from __future__ import annotations

from pathlib import Path

import pytest

from docchat.__main__ import build_parser, main
from docchat.pipeline import RagPipeline


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_ingest_then_ask(pipeline: RagPipeline, paris_pdf: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["ingest", str(paris_pdf)], pipeline=pipeline) == 0
    assert "Stored 2 new fragments" in capsys.readouterr().out

    assert main(["ask", "--show-context", "What is the capital of France?"], pipeline=pipeline) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0].endswith("Paris is the capital of France.")
    assert out[-1] == "Paris."


def test_errors_exit_non_zero(pipeline: RagPipeline, caplog: pytest.LogCaptureFixture) -> None:
    assert main(["ask", "Anyone there?"], pipeline=pipeline) == 1
    assert "store error" in caplog.text
