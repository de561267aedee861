"""Structured generation endpoint logic."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from salvage.core.responder import DEFAULT_TIMEOUT, GenerationOptions, StructuredResponder


class GenerateOptions(BaseModel):
    """Generation settings accepted over HTTP. Mirrors GenerationOptions."""
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1500, gt=0)
    retries: int = Field(default=1, ge=0)
    fallback_to_conversational: bool = True
    enable_partial_recovery: bool = True
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    context: list[dict[str, Any]] = []

    def to_options(self) -> GenerationOptions:
        return GenerationOptions(**self.model_dump())


class GenerateRequest(BaseModel):
    """Request model for the generate endpoint.

    Attributes:
        prompt: The caller's prompt.
        output_schema: Optional schema descriptor, sent as ``schema``.
        options: Optional generation settings.
    """
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(min_length=1)
    output_schema: dict[str, Any] | None = Field(default=None, alias="schema")
    options: GenerateOptions | None = None


class GenerateResponse(BaseModel):
    """Response model for the generate endpoint.

    Attributes:
        record: The structured record. Always present, possibly a fallback.
    """
    record: dict[str, Any]


async def handle_generate(request: GenerateRequest, responder: StructuredResponder) -> GenerateResponse:
    """Run one structured generation.

    Args:
        request: Prompt, schema and options.
        responder: The responder serving the app.

    Returns:
        GenerateResponse holding the record. Never fails once the request
        has validated.
    """
    options = request.options.to_options() if request.options else None
    record = await responder.generate_structured(request.prompt, request.output_schema, options)
    return GenerateResponse(record=record)
