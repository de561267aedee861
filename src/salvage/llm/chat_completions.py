"""OpenAI-compatible chat-completions collaborator.

Posts prompts to a ``/v1/chat/completions`` endpoint (LM Studio, vLLM,
llama.cpp server, OpenAI) via httpx.AsyncClient and returns a Completion.
Every failure is raised as GeneratorError so the responder can fall back.
"""
import logging
from typing import Any

import httpx

from salvage.core.domain import Completion
from salvage.llm.errors import GeneratorError

logger = logging.getLogger("salvage.llm.chat_completions")

DEFAULT_ENDPOINT = "http://localhost:1234/v1/chat/completions"
CONTEXT_MESSAGES = 5
MAX_CONTEXT_CHARS = 2000
HEALTH_CHECK_TIMEOUT = 5.0


def build_messages(prompt: str, context: list[dict[str, Any]], system_prompt: str | None = None) -> list[dict[str, str]]:
    """Assemble the chat messages for one request.

    Only the most recent context messages are sent. Messages that are empty
    or too long are skipped, and ``sender == "agent"`` maps to the assistant
    role.

    Args:
        prompt: The user prompt, sent last.
        context: Earlier conversation messages, oldest first.
        system_prompt: Optional system message, sent first.

    Returns:
        The list of ``{"role", "content"}`` messages.
    """
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    for message in context[-CONTEXT_MESSAGES:]:
        content = str(message.get("content") or message.get("message") or "").strip()
        if not content or len(content) >= MAX_CONTEXT_CHARS:
            continue
        role = "assistant" if message.get("sender") == "agent" else "user"
        messages.append({"role": role, "content": content})
    messages.append({"role": "user", "content": prompt})
    return messages


class ChatCompletionsGenerator:
    """Generator backed by an OpenAI-compatible HTTP endpoint.

    Attributes:
        endpoint: Full URL of the chat-completions route.
        model: Model identifier sent with each request. None lets the server
            pick its loaded model.
        timeout: Request timeout in seconds.
        system_prompt: Optional system message prepended to every request.

    Example:
        >>> generator = ChatCompletionsGenerator("http://localhost:1234/v1/chat/completions")
        >>> completion = await generator.generate("Say hi as JSON", [], {"temperature": 0.1})
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        model: str | None = None,
        *,
        api_key: str | None = None,
        timeout: float = 30.0,
        system_prompt: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the generator.

        Args:
            endpoint: Full URL of the chat-completions route.
            model: Optional model identifier.
            api_key: Optional bearer token.
            timeout: Request timeout in seconds.
            system_prompt: Optional system message.
            transport: Optional httpx transport, mainly for tests.
        """
        self.endpoint = endpoint
        self.model = model
        self.timeout = timeout
        self.system_prompt = system_prompt
        self._api_key = api_key
        self._transport = transport
        logger.debug(f"ChatCompletionsGenerator initialized: endpoint={endpoint}, model={model}")

    @property
    def models_endpoint(self) -> str:
        return self.endpoint.replace("/chat/completions", "/models")

    def _headers(self) -> dict[str, str]:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport, headers=self._headers())

    async def generate(self, prompt: str, context: list[dict[str, Any]] | None = None, options: dict[str, Any] | None = None) -> Completion:
        """Request a completion for a prompt.

        Args:
            prompt: The prompt to send.
            context: Earlier conversation messages, oldest first.
            options: ``temperature`` and ``max_tokens``.

        Returns:
            The completion, with usage and model as reported by the server.

        Raises:
            GeneratorError: If the prompt is empty, the request fails, or the
                response holds no content.
        """
        if not prompt or not isinstance(prompt, str):
            raise GeneratorError("Prompt is required and must be a string")
        options = options or {}
        body: dict[str, Any] = {
            "model": self.model,
            "messages": build_messages(prompt, context or [], self.system_prompt),
            "max_tokens": options.get("max_tokens", 1500),
            "temperature": options.get("temperature", 0.1),
            "stream": False,
        }
        if self.model is None:
            del body["model"]

        logger.info(f"LLM request submitted (prompt length={len(prompt)} chars, messages={len(body['messages'])})")
        try:
            async with self._client(self.timeout) as client:
                response = await client.post(self.endpoint, json=body)
        except httpx.TimeoutException as e:
            logger.error(f"LLM request timed out after {self.timeout}s")
            raise GeneratorError(f"LLM request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error(f"LLM request failed: {e}")
            raise GeneratorError(f"LLM request failed: {e}") from e

        if response.is_error:
            logger.error(f"LLM endpoint returned {response.status_code}: {response.text[:200]}")
            raise GeneratorError(f"LLM endpoint returned {response.status_code}: {response.reason_phrase}")

        try:
            data = response.json()
        except ValueError as e:
            raise GeneratorError("LLM endpoint returned a non-JSON body") from e

        content = _message_content(data)
        logger.info(f"LLM response received (length={len(content)} chars)")
        logger.debug(f"LLM response content: {content}")
        return Completion(content=content, usage=data.get("usage") or {}, model=data.get("model") or self.model)

    async def check_connection(self) -> bool:
        """Return True if the server's models route answers with 2xx."""
        try:
            async with self._client(HEALTH_CHECK_TIMEOUT) as client:
                response = await client.get(self.models_endpoint)
        except httpx.HTTPError as e:
            logger.warning(f"LLM connection check failed: {e} (endpoint={self.models_endpoint})")
            return False
        return response.is_success


def _message_content(data: Any) -> str:
    choices = data.get("choices") if isinstance(data, dict) else None
    if not choices:
        raise GeneratorError("Invalid response format from LLM: no choices")
    message = choices[0].get("message") or {}
    content = message.get("content") or message.get("reasoning_content")
    if not content:
        raise GeneratorError("Invalid response format from LLM: no content")
    return content
