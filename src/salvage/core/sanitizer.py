"""Character-level repair of near-JSON text.

clean() turns the JSON dialect language models tend to write (comments,
trailing commas, single quotes, bare keys, Python literals, fractions) into
text that json.loads() has a fair chance of accepting. It never fails; the
result is still only a candidate and callers must treat a parse error as a
normal outcome.

Each pass is a string-aware rewrite: the text is split into code and
string-literal segments and only the relevant kind is touched, so braces,
quotes, "//" and keywords inside string values survive untouched.
"""
import re

from salvage.helpers.json import QUOTES, Segment, iter_segments, string_end

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_$][\w$]*)(\s*:)")
_LITERAL = re.compile(r"\b(undefined|True|False|None)\b")
_FRACTION = re.compile(r"(\d+(?:\.\d+)?)/(\d+(?:\.\d+)?)")
_WHITESPACE = re.compile(r"\s+")

LITERALS = {"undefined": "null", "True": "true", "False": "false", "None": "null"}
_STRING_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def clean(text: str) -> str:
    """Repair near-JSON text. The passes run in a fixed order.

    1. strip comments
    2. drop trailing commas
    3. single-quoted strings become double-quoted
    4. quote bare keys
    5. normalize undefined/True/False/None
    6. replace quoted fractions with their quotient
    7. collapse whitespace and trim

    Args:
        text: Raw or partially extracted model output.

    Returns:
        The repaired text. Not guaranteed to be valid JSON.
    """
    text = strip_comments(text)
    text = remove_trailing_commas(text)
    text = normalize_quotes(text)
    text = quote_bare_keys(text)
    text = normalize_literals(text)
    text = resolve_fractions(text)
    return collapse_whitespace(text)


def _rewrite(text: str, code=None, string=None) -> str:
    parts = []
    for segment in iter_segments(text, quotes=QUOTES):
        fn = code if segment.kind == "code" else string
        parts.append(fn(segment) if fn else segment.text)
    return "".join(parts)


def strip_comments(text: str) -> str:
    """Remove ``//`` line comments and ``/* */`` block comments outside strings."""
    out = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in QUOTES:
            end = string_end(text, i)
            if end == -1:
                out.append(text[i:])
                break
            out.append(text[i : end + 1])
            i = end + 1
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            if newline == -1:
                break
            i = newline
        elif text.startswith("/*", i):
            close = text.find("*/", i + 2)
            if close == -1:
                break
            i = close + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def remove_trailing_commas(text: str) -> str:
    """Drop a comma that directly precedes "}" or "]"."""
    return _rewrite(text, code=lambda seg: _TRAILING_COMMA.sub(r"\1", seg.text))


def _double_quote(segment: Segment) -> str:
    if segment.quote != "'":
        return segment.text
    inner = segment.inner
    out = ['"']
    i = 0
    while i < len(inner):
        ch = inner[i]
        if ch == "\\" and i + 1 < len(inner):
            nxt = inner[i + 1]
            out.append("'" if nxt == "'" else ch + nxt)
            i += 2
            continue
        out.append('\\"' if ch == '"' else ch)
        i += 1
    if segment.closed:
        out.append('"')
    return "".join(out)


def normalize_quotes(text: str) -> str:
    """Re-emit single-quoted string literals as double-quoted ones.

    Double quotes inside the literal are escaped; apostrophes inside
    double-quoted strings are left alone.
    """
    return _rewrite(text, string=_double_quote)


def quote_bare_keys(text: str) -> str:
    """Quote identifier keys that follow "{" or "," and precede ":"."""
    return _rewrite(text, code=lambda seg: _BARE_KEY.sub(r'\1"\2"\3', seg.text))


def normalize_literals(text: str) -> str:
    """Map JavaScript and Python literals to their JSON spelling."""
    return _rewrite(text, code=lambda seg: _LITERAL.sub(lambda m: LITERALS[m.group(1)], seg.text))


def format_number(value: float) -> str:
    """Render a float as a JSON number, dropping a zero fractional part."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _fraction(segment: Segment) -> str:
    match = _FRACTION.fullmatch(segment.inner) if segment.closed else None
    if match is None:
        return segment.text
    denominator = float(match.group(2))
    if denominator == 0:
        return segment.text
    return format_number(float(match.group(1)) / denominator)


def resolve_fractions(text: str) -> str:
    """Replace quoted fractions such as ``"3/4"`` with their quotient (``0.75``)."""
    return _rewrite(text, string=_fraction)


def _escape_controls(segment: Segment) -> str:
    return "".join(_STRING_ESCAPES.get(ch, ch) for ch in segment.text)


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs outside strings and trim the result.

    Raw newlines and tabs inside string literals are escaped instead, since
    JSON does not allow them there.
    """
    rewritten = _rewrite(
        text,
        code=lambda seg: _WHITESPACE.sub(" ", seg.text),
        string=_escape_controls,
    )
    return rewritten.strip()
