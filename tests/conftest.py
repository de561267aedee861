"""Shared pytest fixtures and test utilities.

This module provides test doubles and factory fixtures for exercising the
responder without a real language model.
"""

import asyncio
from typing import Any

import pytest

from salvage.core.domain import Completion
from salvage.core.responder import StructuredResponder
from salvage.core.telemetry import Telemetry


class FakeGenerator:
    """Scripted text-generation collaborator.

    Each call to generate() consumes the next scripted reply: a string is
    returned as the completion content, an exception instance is raised.
    Once the script runs out, the last reply is repeated. Calls are recorded
    for inspection.
    """

    def __init__(self, *replies: str | BaseException, delay: float = 0.0) -> None:
        self.replies = list(replies) or [""]
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    async def generate(self, prompt: str, context: list[dict[str, Any]], options: dict[str, Any]) -> Completion:
        """Record the call and return (or raise) the next scripted reply.

        Args:
            prompt: The prompt sent by the responder.
            context: Conversation context forwarded by the responder.
            options: Sampling options forwarded by the responder.
        """
        self.calls.append({"prompt": prompt, "context": context, "options": options})
        reply = self.replies[min(len(self.calls) - 1, len(self.replies) - 1)]
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(reply, BaseException):
            raise reply
        return Completion(content=reply, model="fake")


@pytest.fixture
def telemetry():
    """Provide fresh telemetry counters."""
    return Telemetry()


@pytest.fixture
def responder_factory(telemetry):
    """Factory fixture for creating responders around scripted generators.

    Returns:
        Callable: Factory returning (StructuredResponder, FakeGenerator) pairs.
    """

    def _create(*replies: str | BaseException, delay: float = 0.0):
        generator = FakeGenerator(*replies, delay=delay)
        return StructuredResponder(generator, telemetry=telemetry), generator
    return _create


@pytest.fixture
def mood_schema():
    """A small schema with one required and one optional field."""
    return {
        "properties": {
            "mood": {"type": "string", "required": True, "description": "Overall mood"},
            "score": {"type": "number"},
        },
        "required": ["mood"],
    }
