"""Text-generation client error types."""

from salvage.core.domain import CollaboratorError


class GeneratorError(CollaboratorError):
    """Raised when a chat-completions request fails.

    Covers transport errors, timeouts, non-2xx responses and response
    bodies without usable content. The responder treats it as a failed
    attempt.

    Example:
        >>> raise GeneratorError("LLM endpoint returned 503: Service Unavailable")
        Traceback (most recent call last):
        ...
        GeneratorError: LLM endpoint returned 503: Service Unavailable
    """

    pass
