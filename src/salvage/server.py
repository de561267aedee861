"""FastAPI server for Salvage.

This module defines the FastAPI application and HTTP endpoints for
structured generation and extraction. Routes are defined here and delegate
to the salvage.http modules for implementation.
"""
import dotenv
from fastapi import FastAPI

from salvage.cli import build_responder
from salvage.config import load_settings
from salvage.core.responder import StructuredResponder
from salvage.http.extract import ExtractRequest, ExtractResponse, handle_extract
from salvage.http.generate import GenerateRequest, GenerateResponse, handle_generate


def create_app(responder: StructuredResponder | None = None) -> FastAPI:
    """Create and configure a FastAPI application for Salvage.

    Environment variables are loaded from a .env file if present. Without an
    explicit responder, one is built from the environment settings.

    Args:
        responder: The responder serving every route.

    Returns:
        FastAPI: Configured application with /generate, /extract and /status.
    """
    dotenv.load_dotenv()
    if responder is None:
        responder = build_responder(load_settings())
    api = FastAPI(title="salvage")

    @api.post("/generate", response_model=GenerateResponse)
    async def generate(request: GenerateRequest):
        """Generate a structured record for a prompt.

        Args:
            request: Prompt, optional schema and options.

        Returns:
            GenerateResponse: The record, possibly a fallback record.
        """
        return await handle_generate(request, responder)

    @api.post("/extract", response_model=ExtractResponse)
    async def extract(request: ExtractRequest):
        """Extract a structured record from raw model text.

        Args:
            request: Raw text and optional schema.

        Returns:
            ExtractResponse: The record and the winning strategy.
        """
        return await handle_extract(request, responder.cascade)

    @api.get("/status")
    async def status():
        """Report telemetry, registered strategies and collaborator state."""
        return responder.status()

    return api


app = create_app()
"""FastAPI application instance configured from the environment.

Example:
    Run with uvicorn:
        uvicorn salvage.server:app --reload
"""
