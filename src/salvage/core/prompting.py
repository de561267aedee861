"""Prompt augmentation for JSON-only generation."""
import json

from salvage.core.defaults import is_required, properties_of
from salvage.core.domain import Schema

JSON_INSTRUCTIONS = """\
=== JSON GENERATION OPTIMIZATION ===
You are a precise JSON generator. Focus on accuracy and completeness.

=== CRITICAL JSON REQUIREMENTS ===
1. Respond with ONLY valid JSON - no explanations or markdown
2. Start immediately with { and end with }
3. Complete ALL required fields in the schema
4. Use proper JSON syntax: double quotes, no trailing commas
5. Do not truncate or abbreviate any values"""

RESPONSE_FORMAT = """\
=== RESPONSE FORMAT ===
Generate the JSON response now. Start with { and ensure complete, valid JSON:"""


def field_requirements(schema: Schema | None) -> list[str]:
    """One ``- key: type (REQUIRED|optional) - description`` line per declared property."""
    lines = []
    for key, prop in properties_of(schema).items():
        prop = prop if isinstance(prop, dict) else {}
        flag = "(REQUIRED)" if is_required(schema, key) else "(optional)"
        line = f"- {key}: {prop.get('type') or 'any'} {flag}"
        if prop.get("description"):
            line += f" - {prop['description']}"
        lines.append(line)
    return lines


def build_prompt(prompt: str, schema: Schema | None = None) -> str:
    """Append JSON-only instructions, and the schema if given, to a caller prompt.

    Args:
        prompt: The caller's prompt.
        schema: Optional schema descriptor, embedded as indented JSON.

    Returns:
        The augmented prompt sent to the collaborator.
    """
    sections = [prompt, JSON_INSTRUCTIONS]
    if schema:
        sections.append("=== REQUIRED SCHEMA ===\n" + json.dumps(schema, indent=2, default=str))
        requirements = field_requirements(schema)
        if requirements:
            sections.append("=== FIELD REQUIREMENTS ===\n" + "\n".join(requirements))
    sections.append(RESPONSE_FORMAT)
    return "\n\n".join(sections)
