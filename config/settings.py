"""Runtime settings loaded once from the environment."""

import os
from dataclasses import dataclass

from config.defaults import DEFAULTS
from core.errors import ConfigurationError


@dataclass(frozen=True)
class Settings:
    api_key: str
    model: str = DEFAULTS["model"]
    max_tokens: int = DEFAULTS["max_tokens"]
    context_char_cap: int = DEFAULTS["context_char_cap"]
    output_dir: str = DEFAULTS["output_dir"]
    max_attempts: int = DEFAULTS["max_attempts"]
    retry_delay: float = DEFAULTS["retry_delay"]
    request_timeout: float = DEFAULTS["request_timeout"]


def _positive_int(value, default):
    """Parse a positive integer, falling back to default on anything else."""
    if not value:
        return default
    try:
        n = int(value)
    except ValueError:
        return default
    return n if n > 0 else default


def load_settings(environ=None):
    """Build Settings from environment variables.

    Raises ConfigurationError when ANTHROPIC_API_KEY is missing, so the
    failure happens before any stage runs.
    """
    env = os.environ if environ is None else environ

    api_key = env.get("ANTHROPIC_API_KEY", "").strip()
    if not api_key:
        raise ConfigurationError(
            "ANTHROPIC_API_KEY environment variable is not set. "
            "Get a key at https://console.anthropic.com/ and run:\n"
            "  export ANTHROPIC_API_KEY='your-key-here'"
        )

    return Settings(
        api_key=api_key,
        model=env.get("CLAUDE_MODEL") or DEFAULTS["model"],
        max_tokens=_positive_int(env.get("CLAUDE_MAX_TOKENS"), DEFAULTS["max_tokens"]),
        context_char_cap=_positive_int(env.get("PIPELINE_CONTEXT_CAP"), DEFAULTS["context_char_cap"]),
        output_dir=env.get("PIPELINE_OUTPUT_DIR") or DEFAULTS["output_dir"],
        request_timeout=_positive_int(env.get("CLAUDE_REQUEST_TIMEOUT"), DEFAULTS["request_timeout"]),
    )
