"""Helper utilities for Salvage.

This module provides string-aware scanning of JSON-like text produced by
language models.

Exports:
    parse_object: Parse text as JSON and require an object.
    brace_balance: Count unmatched braces outside string literals.
    find_matching_brace: Locate the brace closing a given opening brace.
    scan_structure: Report containers left open at the end of a fragment.
    iter_segments: Split text into code and string-literal segments.
"""

from salvage.helpers.json import (
    brace_balance,
    find_matching_brace,
    iter_segments,
    parse_object,
    scan_structure,
)

__all__ = [
    "brace_balance",
    "find_matching_brace",
    "iter_segments",
    "parse_object",
    "scan_structure",
]
