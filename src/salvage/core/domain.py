"""Core domain types, protocols and errors for Salvage.

This module defines the fundamental types used throughout the package:
- Record: Type alias for an extracted structured record (dict[str, Any])
- Schema: Type alias for a caller-supplied schema descriptor
- Completion: What a text-generation collaborator returns
- Generator: Protocol for text-generation collaborators
- The error taxonomy raised between components

No error defined here ever reaches the caller of
StructuredResponder.generate_structured(); each one is recovered by the
component above the one that raised it.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, TypeAlias


Record: TypeAlias = dict[str, Any]
"""A structured record: string keys mapped to JSON-compatible values.

Records are produced fresh for every call and handed over to the caller,
who owns them from then on.
"""

Schema: TypeAlias = dict[str, Any]
"""A schema descriptor describing the expected record shape.

Recognised keys are ``properties`` (field name to property descriptor),
``required`` (list of field names) and ``fallback`` (a record returned
verbatim when nothing can be extracted). A property descriptor is a mapping
with ``type``, ``required``, ``default`` and ``description`` keys, all
optional. Schemas are never mutated.
"""


class SalvageError(Exception):
    """Base class for every error raised by Salvage components."""


class StrategyFailure(SalvageError):
    """Raised by a single extraction strategy that could not produce a record.

    The cascade catches it, records the attempt, and moves on to the next
    strategy.
    """


class CascadeExhaustedError(SalvageError):
    """Raised when every registered extraction strategy failed.

    Attributes:
        diagnostics: Snapshot describing the raw text that defeated the
            cascade (length, head and tail, brace balance, quote count, ...).
    """

    def __init__(self, message: str, diagnostics: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.diagnostics = diagnostics or {}


class CollaboratorUnavailableError(SalvageError):
    """Raised when no text-generation collaborator is configured, or when the
    configured one does not expose a callable ``generate``.
    """


class CollaboratorError(SalvageError):
    """Raised when the text-generation collaborator fails: network errors,
    timeouts, non-2xx responses, or responses without content.
    """


@dataclass
class Completion:
    """Text returned by a collaborator for one prompt.

    Attributes:
        content: The generated text.
        usage: Token accounting as reported upstream, if any.
        model: Model identifier reported upstream, if any.
        timestamp: When the completion was received.
    """
    content: str
    usage: dict[str, Any] = field(default_factory=dict)
    model: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Generator(Protocol):
    """Protocol for text-generation collaborators.

    The responder only needs an awaitable ``generate``. Implementations may
    raise any exception; the responder treats it as a failed attempt.
    """

    async def generate(self, prompt: str, context: list[dict[str, Any]], options: dict[str, Any]) -> Completion:
        """Generate text for a prompt.

        Args:
            prompt: The full prompt to send.
            context: Earlier conversation messages, oldest first. Each is a
                mapping with ``sender`` and ``content`` (or ``message``).
            options: Sampling options: ``temperature`` and ``max_tokens``.

        Returns:
            The completion.
        """
        ...
