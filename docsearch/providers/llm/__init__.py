"""Completion provider implementations.

OpenAICompletionProvider targets any OpenAI-compatible chat completions
endpoint, with both whole-response and streaming calls.
"""

from docsearch.providers.llm.openai_completion_provider import OpenAICompletionProvider

__all__ = ["OpenAICompletionProvider"]
