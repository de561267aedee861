"""Salvage core components.

The core turns unreliable language-model text into structured records:
- clean: Character-level repair of near-JSON text
- Cascade: Ordered extraction strategies, first success wins
- default_for / conform: Schema-driven defaults and type coercion
- FallbackGenerator: Last-resort record construction
- StructuredResponder: Orchestrates collaborator calls, cascade and fallback
- Telemetry: Thread-safe counters shared by the above

Typical usage:
    from salvage.core import Cascade

    record = Cascade().extract('Here you go: {"mood": "calm",}')
"""

from salvage.core.cascade import Cascade, Extraction, ExtractionAttempt
from salvage.core.defaults import conform, default_for
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
from salvage.core.telemetry import Outcome, Telemetry

__all__ = [
    "Cascade",
    "CascadeExhaustedError",
    "CollaboratorError",
    "CollaboratorUnavailableError",
    "Completion",
    "Extraction",
    "ExtractionAttempt",
    "FallbackGenerator",
    "GenerationOptions",
    "Generator",
    "Outcome",
    "Record",
    "SalvageError",
    "Schema",
    "StrategyFailure",
    "StructuredResponder",
    "Telemetry",
    "clean",
    "conform",
    "default_for",
]
