"""Extraction endpoint logic: run the cascade on text the caller already has."""
import logging
from typing import Any

from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict, Field

from salvage.core.cascade import Cascade
from salvage.core.domain import CascadeExhaustedError

logger = logging.getLogger("salvage.http.extract")


class ExtractRequest(BaseModel):
    """Request model for the extract endpoint.

    Attributes:
        text: Raw model output.
        output_schema: Optional schema descriptor, sent as ``schema``.
        enable_partial_recovery: Allow synthesized structure.
    """
    model_config = ConfigDict(populate_by_name=True)

    text: str
    output_schema: dict[str, Any] | None = Field(default=None, alias="schema")
    enable_partial_recovery: bool = True


class ExtractResponse(BaseModel):
    """Response model for the extract endpoint.

    Attributes:
        record: The extracted record.
        strategy: Name of the strategy that produced it.
    """
    record: dict[str, Any]
    strategy: str


async def handle_extract(request: ExtractRequest, cascade: Cascade) -> ExtractResponse:
    """Extract a record from raw text.

    Args:
        request: Text, schema and recovery flag.
        cascade: The cascade serving the app.

    Returns:
        ExtractResponse with the record and the winning strategy.

    Raises:
        HTTPException: 422 if no strategy could extract a record.
    """
    try:
        extraction = cascade.run(
            request.text,
            request.output_schema,
            enable_partial_recovery=request.enable_partial_recovery,
        )
    except CascadeExhaustedError as e:
        logger.warning(f"Extraction failed for {len(request.text)} chars of text")
        raise HTTPException(status_code=422, detail={"message": str(e), "diagnostics": e.diagnostics})
    return ExtractResponse(record=extraction.record, strategy=extraction.strategy_name)
