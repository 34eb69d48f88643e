# config.py
# Run configuration. Environment variables (and a local .env) supply
# credentials; everything else is passed by the caller.

import os
from pathlib import Path
from typing import Any, Callable

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

load_dotenv()

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MAX_ITERATIONS = 10


class ConfigError(Exception):
    """Raised before any remote call when a run cannot start. Always fatal."""


def env_assistant_id() -> str:
    return os.getenv("TASK_HARNESS_ASSISTANT_ID", "")


def env_api_key() -> str:
    return os.getenv("TASK_HARNESS_API_KEY") or os.getenv("OPENROUTER_API_KEY", "")


def env_base_url() -> str:
    return os.getenv("TASK_HARNESS_BASE_URL") or DEFAULT_BASE_URL


def env_max_iterations() -> int:
    raw = os.getenv("TASK_HARNESS_MAX_ITERATIONS")
    if not raw:
        return DEFAULT_MAX_ITERATIONS
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"TASK_HARNESS_MAX_ITERATIONS must be an integer, got {raw!r}") from None


class RunConfig(BaseModel):
    """Everything a single task run needs besides the task text."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    assistant_id: str = Field(default="", description="Assistant / model identifier.")
    api_key: str = Field(default="", repr=False)
    allowed_tools: tuple[str, ...] | None = Field(
        default=None, description="Tools the assistant is told about. None means all registered tools."
    )
    working_dir: Path = Field(default_factory=Path.cwd)
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=1)
    initial_context: str | None = None
    safe_mode: bool = True
    approval_callback: Callable[[str, dict, str], Any] | None = None
    context_provider: Callable[[str], str] | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    verbose: bool = True

    @classmethod
    def from_env(cls, **overrides: Any) -> "RunConfig":
        """Build a config from environment variables, letting keyword overrides win."""
        values: dict[str, Any] = {
            "assistant_id": env_assistant_id(),
            "api_key": env_api_key(),
            "max_iterations": env_max_iterations(),
        }
        values.update(overrides)
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigError(f"Invalid run configuration: {exc}") from exc

    def check_credentials(self) -> None:
        if not self.assistant_id.strip():
            raise ConfigError(
                "Assistant ID not found. Set TASK_HARNESS_ASSISTANT_ID in your environment or .env file."
            )
        if not self.api_key.strip():
            raise ConfigError(
                "API key not found. Set TASK_HARNESS_API_KEY (or OPENROUTER_API_KEY) in your environment or .env file."
            )
