"""Test suite for Salvage.

Unit tests for the sanitizer, strategies, cascade, defaults, fallback and
telemetry, plus integration tests for the responder, the chat-completions
client, the HTTP server and the CLI. The language model is always replaced
by a scripted fake or an httpx mock transport.
"""
