"""The strategy cascade.

A Cascade runs its strategies in order against one piece of raw model text
and returns the first record produced. There is no scoring: order is the
only priority. When every strategy fails the cascade logs what the text
looked like and raises CascadeExhaustedError; it never invents a record.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from salvage.core.defaults import conform, properties_of
from salvage.core.domain import CascadeExhaustedError, Record, Schema, StrategyFailure
from salvage.core.strategies import DEFAULT_STRATEGIES, RECOVERY_STRATEGIES, Strategy
from salvage.core.telemetry import Telemetry
from salvage.helpers.json import brace_balance

logger = logging.getLogger("salvage.core.cascade")

PREVIEW_CHARS = 150


@dataclass
class ExtractionAttempt:
    """One strategy's try at the raw text.

    Attributes:
        strategy_name: Name of the strategy that ran.
        raw_text: The text it was given.
        record: The record produced, or None on failure.
        reason: Why the strategy failed, or None on success.
    """

    strategy_name: str
    raw_text: str
    record: Record | None = None
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.record is not None


@dataclass
class Extraction:
    """Result of a successful cascade run.

    Attributes:
        record: The extracted (and, with a schema, conformed) record.
        strategy_name: Name of the winning strategy.
        attempts: Every attempt made, in order, ending with the winner.
    """

    record: Record
    strategy_name: str
    attempts: list[ExtractionAttempt] = field(default_factory=list)


def describe_failure(text: str) -> dict[str, Any]:
    """Summarize raw text that no strategy could parse."""
    return {
        "response_length": len(text),
        "first_chars": text[:PREVIEW_CHARS],
        "last_chars": text[-PREVIEW_CHARS:],
        "contains_open_brace": "{" in text,
        "contains_close_brace": "}" in text,
        "brace_balance": brace_balance(text),
        "quotes_count": text.count('"'),
        "contains_markdown": "```" in text,
        "contains_comments": "//" in text or "/*" in text,
    }


class Cascade:
    """Ordered list of extraction strategies.

    Typical usage:
        cascade = Cascade()
        record = cascade.extract('Sure! {"a": 1}')

    Attributes:
        strategies: The strategies, in the order they are tried.
        telemetry: Optional Telemetry that is told which strategy won.
    """

    def __init__(self, strategies: Sequence[Strategy] | None = None, telemetry: Telemetry | None = None) -> None:
        self.strategies: tuple[Strategy, ...] = tuple(DEFAULT_STRATEGIES if strategies is None else strategies)
        self.telemetry = telemetry

    @property
    def strategy_names(self) -> list[str]:
        return [strategy.name for strategy in self.strategies]

    def run(self, raw_text: str, schema: Schema | None = None, *, enable_partial_recovery: bool = True) -> Extraction:
        """Try each strategy in turn until one produces a record.

        Args:
            raw_text: Raw model output.
            schema: Optional schema descriptor. With declared properties the
                winning record is conformed to it.
            enable_partial_recovery: When False, strategies that synthesize
                structure (partial completion and schema-based recovery) are
                skipped.

        Returns:
            An Extraction holding the record, the winning strategy and the
            attempts made.

        Raises:
            TypeError: If raw_text is not a string.
            CascadeExhaustedError: If every strategy failed.
        """
        if not isinstance(raw_text, str):
            raise TypeError(f"raw_text must be str, got {type(raw_text).__name__}")

        attempts: list[ExtractionAttempt] = []
        for strategy in self.strategies:
            if not enable_partial_recovery and strategy.name in RECOVERY_STRATEGIES:
                continue
            try:
                record = strategy.try_extract(raw_text, schema)
            except StrategyFailure as e:
                logger.debug(f"Strategy {strategy.name} failed: {e}")
                attempts.append(ExtractionAttempt(strategy.name, raw_text, reason=str(e)))
                continue
            except Exception as e:
                logger.warning(f"Strategy {strategy.name} raised {type(e).__name__}: {e}")
                attempts.append(ExtractionAttempt(strategy.name, raw_text, reason=f"{type(e).__name__}: {e}"))
                continue
            if not isinstance(record, dict):
                attempts.append(ExtractionAttempt(strategy.name, raw_text, reason="Result is not an object"))
                continue

            if properties_of(schema):
                record = conform(record, schema)
            attempts.append(ExtractionAttempt(strategy.name, raw_text, record=record))
            logger.info(f"Extracted record with strategy {strategy.name} after {len(attempts)} attempt(s)")
            if self.telemetry is not None:
                self.telemetry.record_strategy(strategy.name)
            return Extraction(record, strategy.name, attempts)

        diagnostics = describe_failure(raw_text)
        logger.error(f"All {len(attempts)} extraction strategies failed: {diagnostics}")
        raise CascadeExhaustedError(f"All {len(attempts)} extraction strategies failed", diagnostics)

    def extract(self, raw_text: str, schema: Schema | None = None, *, enable_partial_recovery: bool = True) -> Record:
        """Return only the record of run(). Raises as run() does."""
        return self.run(raw_text, schema, enable_partial_recovery=enable_partial_recovery).record
