"""String-aware JSON scanning for LLM responses.

LLM output routinely contains braces and quotes inside string values
(``{"note": "use {curly} braces"}``). Counting characters naively breaks on
those, so every helper here walks the text with a small state machine that
knows whether it is inside a string literal and skips escaped characters.

Structural helpers (brace balance, matching brace, open containers) only
treat double quotes as string delimiters, because apostrophes in surrounding
prose would otherwise swallow the rest of the text. The sanitizer passes
``quotes=QUOTES`` to also recognise single-quoted strings.
"""

import json as _json
from dataclasses import dataclass, field
from typing import Any, Iterator

QUOTES = ('"', "'")
CLOSERS = {"{": "}", "[": "]"}


@dataclass(frozen=True)
class Segment:
    """A run of text that is either code or a single string literal.

    Attributes:
        kind: "code" or "string".
        text: The raw text of the segment. String segments include their
            delimiting quotes.
        quote: The delimiter of a string segment, "" for code.
        closed: False when a string literal runs to the end of the input.
    """

    kind: str
    text: str
    quote: str = ""
    closed: bool = True

    @property
    def inner(self) -> str:
        """The contents of a string segment without its delimiters."""
        if self.kind != "string":
            return self.text
        return self.text[1:-1] if self.closed else self.text[1:]


@dataclass
class Structure:
    """Result of scanning text for unclosed containers.

    Attributes:
        stack: Opening brackets ("{" or "[") still waiting for a closer,
            innermost last.
        in_string: True when the text ends inside a string literal.
        balance: Count of "{" minus count of "}" outside string literals.
    """

    stack: list[str] = field(default_factory=list)
    in_string: bool = False
    balance: int = 0

    @property
    def closers(self) -> str:
        """The characters that would close every open container, in order."""
        return "".join(CLOSERS[opener] for opener in reversed(self.stack))


def string_end(text: str, start: int) -> int:
    """Return the index of the quote closing the literal opened at ``start``.

    Returns -1 if the literal is never closed.
    """
    quote = text[start]
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i
        i += 1
    return -1


def iter_segments(text: str, quotes: tuple[str, ...] = ('"',)) -> Iterator[Segment]:
    """Split text into alternating code and string-literal segments.

    Args:
        text: The text to split.
        quotes: Characters that open a string literal.

    Yields:
        Segment objects covering the whole input, in order.
    """
    code_start = 0
    i = 0
    while i < len(text):
        if text[i] not in quotes:
            i += 1
            continue
        if i > code_start:
            yield Segment("code", text[code_start:i])
        end = string_end(text, i)
        if end == -1:
            yield Segment("string", text[i:], text[i], closed=False)
            return
        yield Segment("string", text[i : end + 1], text[i])
        i = code_start = end + 1
    if code_start < len(text):
        yield Segment("code", text[code_start:])


def iter_structure(text: str) -> Iterator[tuple[int, str]]:
    """Yield ``(index, char)`` for every character outside string literals."""
    offset = 0
    for segment in iter_segments(text):
        if segment.kind == "code":
            for i, ch in enumerate(segment.text):
                yield offset + i, ch
        offset += len(segment.text)


def brace_balance(text: str) -> int:
    """Count of "{" minus count of "}" outside string literals."""
    balance = 0
    for _, ch in iter_structure(text):
        if ch == "{":
            balance += 1
        elif ch == "}":
            balance -= 1
    return balance


def find_matching_brace(text: str, start: int) -> int:
    """Return the index of the "}" that closes the "{" at ``start``.

    Returns -1 when the object is never closed.
    """
    depth = 0
    for i, ch in iter_structure(text[start:]):
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return start + i
    return -1


def scan_structure(text: str) -> Structure:
    """Scan text and report which containers are left open at the end."""
    structure = Structure()
    for segment in iter_segments(text):
        if segment.kind == "string":
            structure.in_string = not segment.closed
            continue
        structure.in_string = False
        for ch in segment.text:
            if ch == "{":
                structure.balance += 1
            elif ch == "}":
                structure.balance -= 1
            if ch in CLOSERS:
                structure.stack.append(ch)
            elif ch in ("}", "]") and structure.stack and CLOSERS[structure.stack[-1]] == ch:
                structure.stack.pop()
    return structure


def parse_object(text: str) -> dict[str, Any]:
    """Parse text as JSON and require the result to be an object.

    Args:
        text: Candidate JSON text.

    Returns:
        The parsed JSON object as a dictionary.

    Raises:
        ValueError: If the text is not valid JSON or does not hold an object.

    Example:
        >>> parse_object('{"key": "value"}')
        {'key': 'value'}
    """
    try:
        value = _json.loads(text)
    except _json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}") from e
    if not isinstance(value, dict):
        raise ValueError(f"Expected a JSON object, got {type(value).__name__}")
    return value
