"""Environment-driven settings.

Values come from the process environment after loading a ``.env`` file (if
present) with python-dotenv:

    SALVAGE_LLM_ENDPOINT  Chat-completions URL
    SALVAGE_LLM_MODEL     Model identifier (server default when unset)
    SALVAGE_LLM_API_KEY   Bearer token (none when unset)
    SALVAGE_LLM_TIMEOUT   Request timeout in seconds
    SALVAGE_LOG_DIR       Directory for log files
    SALVAGE_LOG_LEVEL     Log level name
"""
import os
from dataclasses import dataclass
from typing import Mapping

import dotenv

from salvage.llm.chat_completions import DEFAULT_ENDPOINT


@dataclass(frozen=True)
class Settings:
    llm_endpoint: str = DEFAULT_ENDPOINT
    llm_model: str | None = None
    llm_api_key: str | None = None
    llm_timeout: float = 30.0
    log_dir: str = "logs/"
    log_level: str = "INFO"


def _float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from the environment.

    Args:
        environ: Mapping to read instead of os.environ. When given, no .env
            file is loaded.

    Returns:
        The settings, with defaults for unset variables.

    Raises:
        ValueError: If SALVAGE_LLM_TIMEOUT is not a positive number.
    """
    if environ is None:
        dotenv.load_dotenv()
        environ = os.environ
    return Settings(
        llm_endpoint=environ.get("SALVAGE_LLM_ENDPOINT") or DEFAULT_ENDPOINT,
        llm_model=environ.get("SALVAGE_LLM_MODEL") or None,
        llm_api_key=environ.get("SALVAGE_LLM_API_KEY") or None,
        llm_timeout=_float(environ, "SALVAGE_LLM_TIMEOUT", 30.0),
        log_dir=environ.get("SALVAGE_LOG_DIR") or "logs/",
        log_level=(environ.get("SALVAGE_LOG_LEVEL") or "INFO").upper(),
    )
