"""Unit tests for prompt assembly and the completion client."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from docchat.config import Settings
from docchat.errors import UpstreamServiceError
from docchat.generation.llm import OpenAICompletionClient, get_llm
from docchat.generation.prompts import build_answer_prompt, build_context


class TestPrompts:
    def test_context_joined_with_separator(self) -> None:
        assert build_context(["a", "b", "c"]) == "a. b. c"
        assert build_context(["a", "b"], separator=" | ") == "a | b"

    def test_answer_prompt_layout(self) -> None:
        prompt = build_answer_prompt(["Paris is the capital of France."], "What is the capital of France?")
        assert prompt.splitlines() == [
            "Info: Paris is the capital of France.",
            "Question: What is the capital of France?",
            "Answer:",
        ]

    def test_braces_in_context_are_kept_literally(self) -> None:
        prompt = build_answer_prompt(["config {key} = 1"], "What is {key}?")
        assert "Info: config {key} = 1" in prompt
        assert "Question: What is {key}?" in prompt

    def test_no_context(self) -> None:
        assert build_answer_prompt([], "Hi?").startswith("Info: \nQuestion: Hi?")


class TestCompletionClient:
    def test_get_llm_bounds_output_length(self) -> None:
        config = Settings(
            openai_api_key="sk-test",
            completion_model="gpt-3.5-turbo-instruct",
            completion_max_tokens=64,
            _env_file=None,
        )
        with patch("docchat.generation.llm.OpenAI") as cls:
            get_llm(config)
        kwargs = cls.call_args.kwargs
        assert kwargs["model"] == "gpt-3.5-turbo-instruct"
        assert kwargs["max_tokens"] == 64
        assert kwargs["temperature"] == 0.0
        assert kwargs["api_key"] == "sk-test"

    def test_get_llm_custom_endpoint(self) -> None:
        config = Settings(llm_base_url="http://vllm:8000/v1", openai_api_key="", _env_file=None)
        with patch("docchat.generation.llm.OpenAI") as cls:
            get_llm(config)
        assert cls.call_args.kwargs["base_url"] == "http://vllm:8000/v1"
        assert cls.call_args.kwargs["api_key"] == "EMPTY"

    def test_complete_returns_text(self) -> None:
        with patch("docchat.generation.llm.OpenAI") as cls:
            cls.return_value.ainvoke = AsyncMock(return_value=" Paris.")
            client = OpenAICompletionClient(Settings(openai_api_key="k", _env_file=None))
            assert asyncio.run(client.complete("Info: x")) == " Paris."
        cls.return_value.ainvoke.assert_awaited_once_with("Info: x")

    def test_complete_wraps_errors(self) -> None:
        with patch("docchat.generation.llm.OpenAI") as cls:
            cls.return_value.ainvoke = AsyncMock(side_effect=RuntimeError("502 Bad Gateway"))
            client = OpenAICompletionClient(Settings(openai_api_key="k", _env_file=None))
            with pytest.raises(UpstreamServiceError, match="502") as info:
                asyncio.run(client.complete("Info: x"))
        assert info.value.service == "completion"
