"""Runtime settings loaded from the environment."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .orchestration.orchestrator import ToolFailurePolicy


_TRUE_VALUES = ("true", "1", "yes")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in _TRUE_VALUES


class AgentSettings(BaseModel):
    """Settings for one agent run."""

    openai_api_key: str | None = None
    model: str = "gpt-4o-mini"
    temperature: float = 0.0
    openai_max_retries: int = 2

    max_iterations: int = Field(default=20, ge=1)
    context_window_tokens: int = Field(default=128_000, gt=0)
    response_reserve_tokens: int = Field(default=500, ge=0)
    tool_failure_policy: ToolFailurePolicy = ToolFailurePolicy.FAIL_FAST

    headless: bool = True
    browser_user_data_dir: str | None = None
    navigation_timeout_ms: int = 30_000
    http_timeout: float = 30.0

    def require_api_key(self) -> str:
        """Return the API key or fail before any run starts."""
        if not self.openai_api_key:
            raise ValueError("OPENAI_API_KEY environment variable not set")
        return self.openai_api_key

    @classmethod
    def from_env(cls, **overrides) -> "AgentSettings":
        """Build settings from environment variables.

        Keyword overrides win over the environment; ``None`` overrides are ignored.
        """
        load_dotenv()
        values = {
            "openai_api_key": os.getenv("OPENAI_API_KEY") or None,
            "model": os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            "max_iterations": int(os.getenv("AGENT_MAX_ITERATIONS", "20")),
            "context_window_tokens": int(os.getenv("AGENT_CONTEXT_WINDOW_TOKENS", "128000")),
            "response_reserve_tokens": int(os.getenv("AGENT_RESPONSE_RESERVE_TOKENS", "500")),
            "tool_failure_policy": os.getenv("AGENT_TOOL_FAILURE_POLICY", ToolFailurePolicy.FAIL_FAST.value),
            "headless": _env_bool("BROWSER_HEADLESS", True),
            "browser_user_data_dir": os.getenv("BROWSER_USER_DATA_DIR") or None,
            "navigation_timeout_ms": int(os.getenv("BROWSER_TIMEOUT_MS", "30000")),
            "http_timeout": float(os.getenv("HTTP_TIMEOUT", "30.0")),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
