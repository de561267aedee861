"""Salvage: structured records from unreliable language-model output.

Salvage asks a text-generation collaborator for JSON, repairs and extracts
whatever comes back through an ordered cascade of strategies, and falls back
to a schema-derived record when nothing can be recovered.
"""

from salvage.core.cascade import Cascade
from salvage.core.domain import (
    CascadeExhaustedError,
    CollaboratorError,
    CollaboratorUnavailableError,
    Completion,
    Generator,
    Record,
    SalvageError,
    Schema,
    StrategyFailure,
)
from salvage.core.fallback import FallbackGenerator
from salvage.core.responder import GenerationOptions, StructuredResponder
from salvage.core.sanitizer import clean
from salvage.core.telemetry import Telemetry
from salvage.llm import ChatCompletionsGenerator, GeneratorError

__all__ = [
    "Cascade",
    "CascadeExhaustedError",
    "ChatCompletionsGenerator",
    "CollaboratorError",
    "CollaboratorUnavailableError",
    "Completion",
    "FallbackGenerator",
    "GenerationOptions",
    "Generator",
    "GeneratorError",
    "Record",
    "SalvageError",
    "Schema",
    "StrategyFailure",
    "StructuredResponder",
    "Telemetry",
    "clean",
]
