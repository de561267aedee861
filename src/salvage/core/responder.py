"""Structured-response orchestration.

StructuredResponder is the public entry point. One call walks a small state
machine:

    Idle -> PrimaryAttempt -> (Success | FallbackAttempt)
         -> (Success | FinalFallback) -> Done

- PrimaryAttempt asks the collaborator for JSON with the augmented prompt and
  runs the cascade on the reply.
- FallbackAttempt repeats the request once with a warmer temperature and a
  larger token budget.
- FinalFallback builds a record from the schema or the prompt.

generate_structured() never raises (cancellation aside). Every call is
counted in Telemetry exactly once, at its terminal transition.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any

from salvage.core.cascade import Cascade
from salvage.core.domain import (
    CollaboratorError,
    CollaboratorUnavailableError,
    Generator,
    Record,
    Schema,
)
from salvage.core.fallback import FallbackGenerator
from salvage.core.prompting import build_prompt
from salvage.core.telemetry import Outcome, Telemetry

logger = logging.getLogger("salvage.core.responder")

ERROR_PREVIEW_CHARS = 200
FALLBACK_TEMPERATURE_STEP = 0.2
FALLBACK_TOKEN_STEP = 200
DEFAULT_TIMEOUT = 30.0


@dataclass
class GenerationOptions:
    """Per-call generation settings.

    Attributes:
        temperature: Sampling temperature of the primary attempt.
        max_tokens: Token budget of the primary attempt.
        retries: Accepted for compatibility. At most one fallback attempt is
            ever made, whatever the value.
        fallback_to_conversational: Make the fallback attempt after a failed
            primary attempt. When False, go straight to the fallback record.
        enable_partial_recovery: Allow the cascade to synthesize structure
            from truncated or unstructured text.
        timeout: Seconds allowed for each collaborator call.
        context: Earlier conversation messages forwarded to the collaborator.
    """
    temperature: float = 0.1
    max_tokens: int = 1500
    retries: int = 1
    fallback_to_conversational: bool = True
    enable_partial_recovery: bool = True
    timeout: float = DEFAULT_TIMEOUT
    context: list[dict[str, Any]] = field(default_factory=list)

    def escalated(self) -> "GenerationOptions":
        """Options for the fallback attempt."""
        return replace(
            self,
            temperature=round(self.temperature + FALLBACK_TEMPERATURE_STEP, 2),
            max_tokens=self.max_tokens + FALLBACK_TOKEN_STEP,
        )

    def sampling(self) -> dict[str, Any]:
        return {"temperature": self.temperature, "max_tokens": self.max_tokens}


class _CallTracker:
    """Records the terminal transition of one call, at most once."""

    def __init__(self, telemetry: Telemetry) -> None:
        self.telemetry = telemetry
        self.started = time.perf_counter()
        self.done = False
        telemetry.record_request()

    def complete(self, outcome: Outcome) -> None:
        if self.done:
            return
        self.done = True
        self.telemetry.record_completion(outcome, (time.perf_counter() - self.started) * 1000)


def _truncate(error: BaseException | str) -> str:
    return str(error)[:ERROR_PREVIEW_CHARS]


def _content_of(completion: Any) -> str | None:
    if isinstance(completion, str):
        return completion
    if isinstance(completion, dict):
        return completion.get("content")
    return getattr(completion, "content", None)


class StructuredResponder:
    """Turns a prompt into a structured record, whatever the model returns.

    Typical usage:
        responder = StructuredResponder(ChatCompletionsGenerator(endpoint))
        record = await responder.generate_structured(
            "Rate this message", schema={"properties": {"score": {"type": "number"}}}
        )

    Attributes:
        generator: The text-generation collaborator, or None.
        telemetry: Counters updated by every call.
        cascade: The extraction cascade, sharing the same telemetry.
        fallback: The generator of last-resort records.
    """

    def __init__(
        self,
        generator: Generator | None = None,
        *,
        telemetry: Telemetry | None = None,
        cascade: Cascade | None = None,
        fallback: FallbackGenerator | None = None,
    ) -> None:
        self.generator = generator
        self.telemetry = telemetry or Telemetry()
        self.cascade = cascade or Cascade(telemetry=self.telemetry)
        if self.cascade.telemetry is None:
            self.cascade.telemetry = self.telemetry
        self.fallback = fallback or FallbackGenerator()
        logger.debug(f"StructuredResponder initialized: strategies={self.cascade.strategy_names}")

    @property
    def connected(self) -> bool:
        return callable(getattr(self.generator, "generate", None))

    async def generate_structured(
        self,
        prompt: str,
        schema: Schema | None = None,
        options: GenerationOptions | None = None,
    ) -> Record:
        """Produce a structured record for a prompt.

        Args:
            prompt: The caller's prompt.
            schema: Optional schema descriptor the record should conform to.
            options: Generation settings. Defaults to GenerationOptions().

        Returns:
            A record. On total failure, the fallback record.
        """
        options = options or GenerationOptions()
        tracker = _CallTracker(self.telemetry)
        try:
            if not self.connected:
                raise CollaboratorUnavailableError("No text-generation collaborator with a callable generate()")

            full_prompt = build_prompt(prompt, schema)
            try:
                record = await self._attempt(full_prompt, schema, options)
            except Exception as e:
                if not options.fallback_to_conversational:
                    raise
                logger.warning(
                    f"Primary attempt failed, retrying with adjusted options: "
                    f"prompt_type={self.fallback.classify_prompt(prompt)}, "
                    f"has_schema={schema is not None}, error={_truncate(e)}"
                )
                record = await self._attempt(full_prompt, schema, options.escalated())
                tracker.complete(Outcome.FALLBACK_SUCCESS)
                return record
            tracker.complete(Outcome.PRIMARY_SUCCESS)
            return record
        except CollaboratorUnavailableError as e:
            logger.warning(f"Collaborator unavailable, using fallback record: {e}")
            return self._final_fallback(tracker, prompt, schema, e)
        except Exception as e:
            logger.warning(
                f"Structured generation failed, using fallback record: "
                f"prompt_type={self.fallback.classify_prompt(prompt)}, "
                f"has_schema={schema is not None}, error={_truncate(e)}"
            )
            return self._final_fallback(tracker, prompt, schema, e)

    async def _attempt(self, prompt: str, schema: Schema | None, options: GenerationOptions) -> Record:
        logger.debug(f"Requesting completion: temperature={options.temperature}, max_tokens={options.max_tokens}")
        try:
            async with asyncio.timeout(options.timeout):
                completion = await self.generator.generate(prompt, list(options.context), options.sampling())
        except TimeoutError as e:
            raise CollaboratorError(f"Collaborator timed out after {options.timeout}s") from e
        except CollaboratorError:
            raise
        except Exception as e:
            raise CollaboratorError(f"{type(e).__name__}: {e}") from e

        content = _content_of(completion)
        if not isinstance(content, str) or not content.strip():
            raise CollaboratorError("Empty response from collaborator")
        logger.debug(f"Completion received (length={len(content)} chars)")
        return self.cascade.extract(content, schema, enable_partial_recovery=options.enable_partial_recovery)

    def _final_fallback(self, tracker: _CallTracker, prompt: str, schema: Schema | None, error: BaseException) -> Record:
        record = self.fallback.generate(schema, prompt, error)
        tracker.complete(Outcome.FINAL_FALLBACK)
        return record

    def status(self) -> dict[str, Any]:
        """Telemetry snapshot plus the cascade and collaborator state."""
        return {
            **self.telemetry.snapshot(),
            "strategies": self.cascade.strategy_names,
            "most_successful_strategy": self.telemetry.most_successful_strategy(),
            "collaborator": "connected" if self.connected else "disconnected",
        }
