"""Text-generation collaborators.

Exports:
    ChatCompletionsGenerator: Async client for OpenAI-compatible endpoints.
    GeneratorError: Raised when a request fails.
"""

from salvage.llm.chat_completions import ChatCompletionsGenerator
from salvage.llm.errors import GeneratorError

__all__ = ["ChatCompletionsGenerator", "GeneratorError"]
