"""Extraction strategies.

Each strategy is one self-contained way of recovering a record from raw model
text. A strategy either returns a dict or raises StrategyFailure; it never
returns a placeholder. The cascade tries them in the order of
DEFAULT_STRATEGIES, most reliable first.
"""
import json
import re
from typing import Any, Protocol

from salvage.core.defaults import default_for, parse_number, properties_of
from salvage.core.domain import Record, Schema, StrategyFailure
from salvage.core.sanitizer import clean
from salvage.helpers.json import (
    find_matching_brace,
    parse_object,
    scan_structure,
)


class Strategy(Protocol):
    """Protocol for extraction strategies.

    Attributes:
        name: Stable identifier used in logs and telemetry.
    """

    name: str

    def try_extract(self, text: str, schema: Schema | None = None) -> Record:
        """Recover a record from raw model text.

        Args:
            text: Raw model output.
            schema: Optional schema descriptor.

        Returns:
            The recovered record.

        Raises:
            StrategyFailure: If this strategy cannot produce a record.
        """
        ...


def _loads(candidate: str) -> Record:
    try:
        return parse_object(candidate)
    except ValueError as e:
        raise StrategyFailure(str(e)) from e


def _first_parsed(candidates, sanitize: bool) -> Record | None:
    for candidate in candidates:
        try:
            return _loads(clean(candidate) if sanitize else candidate.strip())
        except StrategyFailure:
            continue
    return None


# -- Strategies ------------------------------------------------------------------


class DirectStrategy:
    """Parse the raw text as-is."""

    name = "direct"

    def try_extract(self, text: str, schema: Schema | None = None) -> Record:
        return _loads(text)


class MarkdownStrategy:
    """Parse the contents of a fenced or inline code block."""

    name = "markdown"
    patterns = (
        re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE),
        re.compile(r"```\s*([\s\S]*?)\s*```"),
        re.compile(r"`([\s\S]*?)`"),
    )

    def try_extract(self, text: str, schema: Schema | None = None) -> Record:
        candidates = (m.group(1) for pattern in self.patterns for m in pattern.finditer(text))
        record = _first_parsed(candidates, sanitize=False)
        if record is None:
            raise StrategyFailure("No markdown JSON found")
        return record


class ObjectExtractionStrategy:
    """Parse a single object embedded in prose.

    Patterns are tried in order: an object closing the text, any brace span,
    and a nested-object span. The first match that parses wins.
    """

    name = "object_extraction"
    patterns = (
        re.compile(r"\{[\s\S]*\}(?=\s*$)"),
        re.compile(r"\{[\s\S]*\}"),
        re.compile(r"\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}"),
    )

    def try_extract(self, text: str, schema: Schema | None = None) -> Record:
        candidates = (m.group(0) for pattern in self.patterns if (m := pattern.search(text)))
        record = _first_parsed(candidates, sanitize=True)
        if record is None:
            raise StrategyFailure("No valid JSON object found")
        return record


class ContentIndicatorStrategy:
    """Parse an object introduced by a label such as "Result:" or "Response:"."""

    name = "content_indicators"
    patterns = (
        re.compile(r"(?:JSON\s*Response|Answer|Result|Output)\s*:?\s*(\{[\s\S]*?\})", re.IGNORECASE),
        re.compile(r"(?:Response|Result)\s*:?\s*(\{[\s\S]*?\})", re.IGNORECASE),
        re.compile(r"(\{[\s\S]*?\})(?:\s*$|\s*\n)"),
    )

    def try_extract(self, text: str, schema: Schema | None = None) -> Record:
        candidates = (m.group(1) for pattern in self.patterns if (m := pattern.search(text)))
        record = _first_parsed(candidates, sanitize=True)
        if record is None:
            raise StrategyFailure("No content indicators found")
        return record


class LineReconstructionStrategy:
    """Rebuild an object spanning several lines, skipping leading prose.

    Collection starts at the first line beginning with "{" and stops once the
    brace balance of the collected lines returns to zero.
    """

    name = "line_reconstruction"

    def try_extract(self, text: str, schema: Schema | None = None) -> Record:
        collected: list[str] = []
        for line in text.split("\n"):
            if not collected and not line.strip().startswith("{"):
                continue
            collected.append(line)
            if scan_structure("\n".join(collected)).balance == 0:
                return _loads(clean("\n".join(collected)))
        if not collected:
            raise StrategyFailure("No JSON structure found in lines")
        raise StrategyFailure("Object spanning lines is never closed")


class AggressiveCleaningStrategy:
    """Keep only the span from the first "{" to its matching "}"."""

    name = "aggressive_cleaning"

    def try_extract(self, text: str, schema: Schema | None = None) -> Record:
        start = text.find("{")
        if start == -1:
            raise StrategyFailure("No opening brace found")
        end = find_matching_brace(text, start)
        if end == -1:
            raise StrategyFailure("No closing brace found")
        return _loads(clean(text[start : end + 1]))


class PartialCompletionStrategy:
    """Complete an object that was truncated mid-stream.

    The fragment from the first "{" onwards is repaired by closing an open
    string, giving a dangling key a value (the schema default when the key is
    declared, else null), dropping a dangling comma, and appending the
    closers of every container still open.
    """

    name = "partial_completion"
    _dangling_colon = re.compile(r'"((?:[^"\\]|\\.)*)"\s*:\s*$')
    _dangling_key = re.compile(r'[{,]\s*"((?:[^"\\]|\\.)*)"\s*$')

    def try_extract(self, text: str, schema: Schema | None = None) -> Record:
        start = text.find("{")
        if start == -1:
            raise StrategyFailure("No opening brace found")
        fragment = text[start:].rstrip()
        structure = scan_structure(fragment)
        if not structure.stack:
            raise StrategyFailure("Not a partial JSON object")

        if structure.in_string:
            # a lone trailing backslash would escape the closing quote
            if (len(fragment) - len(fragment.rstrip("\\"))) % 2:
                fragment = fragment[:-1]
            fragment += '"'
        fragment = fragment.rstrip()
        if fragment.endswith(","):
            fragment = fragment[:-1].rstrip()

        if m := self._dangling_colon.search(fragment):
            fragment += json.dumps(self._value_for(m.group(1), schema))
        elif structure.stack[-1] == "{" and (m := self._dangling_key.search(fragment)):
            fragment += ": " + json.dumps(self._value_for(m.group(1), schema))

        return _loads(clean(fragment + structure.closers))

    @staticmethod
    def _value_for(key: str, schema: Schema | None) -> Any:
        prop = properties_of(schema).get(key)
        return default_for(prop) if prop is not None else None


class SchemaRecoveryStrategy:
    """Rebuild a record from loose ``key: value`` pairs using the schema.

    Quoted keys are always taken; bare keys only when the schema declares
    them. Every declared property that was not found gets its default.
    """

    name = "schema_based_recovery"
    _value = r'("(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\'|[^,}\n]+)'
    quoted_pair = re.compile(r'"([^"]+)"\s*:\s*' + _value)
    bare_pair = re.compile(r'(?<![\w"\'])([A-Za-z_][\w-]*)\s*:\s*' + _value)

    def try_extract(self, text: str, schema: Schema | None = None) -> Record:
        properties = properties_of(schema)
        if not properties:
            raise StrategyFailure("No schema available for recovery")

        extracted: Record = {}
        for m in self.quoted_pair.finditer(text):
            extracted[m.group(1)] = literal_value(m.group(2))
        for m in self.bare_pair.finditer(text):
            key = m.group(1)
            if key in properties and key not in extracted:
                extracted[key] = literal_value(m.group(2))

        for key, prop in properties.items():
            if key not in extracted:
                extracted[key] = default_for(prop)
        return extracted


def literal_value(raw: str) -> Any:
    """Interpret a loosely written scalar: quoted string, number, boolean or null."""
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if lowered in ("null", "none", "undefined"):
        return None
    try:
        return parse_number(value)
    except ValueError:
        return value


DEFAULT_STRATEGIES: tuple[Strategy, ...] = (
    DirectStrategy(),
    MarkdownStrategy(),
    ObjectExtractionStrategy(),
    ContentIndicatorStrategy(),
    LineReconstructionStrategy(),
    AggressiveCleaningStrategy(),
    PartialCompletionStrategy(),
    SchemaRecoveryStrategy(),
)
"""The registered strategies, in the order the cascade tries them."""

RECOVERY_STRATEGIES = frozenset({"partial_completion", "schema_based_recovery"})
"""Strategies that synthesize structure rather than find it. Disabled by
enable_partial_recovery=False."""
