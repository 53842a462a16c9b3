"""Prompt template for retrieval-augmented answers.

The retrieved passages are joined into one ``Info:`` line, followed by the
user's question and an open ``Answer:`` cue for a completion model.
"""

from __future__ import annotations

from collections.abc import Sequence

from langchain_core.prompts import PromptTemplate

ANSWER_TEMPLATE = """\
Info: {context}
Question: {question}
Answer:"""

ANSWER_PROMPT = PromptTemplate.from_template(ANSWER_TEMPLATE)


def build_context(texts: Sequence[str], separator: str = ". ") -> str:
    """Join retrieved passages into a single context block."""
    return separator.join(texts)


def build_answer_prompt(texts: Sequence[str], question: str, separator: str = ". ") -> str:
    """Build the completion prompt for *question* grounded in *texts*."""
    return ANSWER_PROMPT.format(context=build_context(texts, separator), question=question)
