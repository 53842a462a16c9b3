"""
Generation — prompt assembly and the completion client.

Prompts live in :mod:`docchat.generation.prompts`; the model client in
:mod:`docchat.generation.llm` is the only place that knows which provider
answers.
"""
