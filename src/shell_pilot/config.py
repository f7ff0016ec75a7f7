# config.py
# Typed configuration, loaded from a TOML file.
#
# The API key may be left out of the file and supplied through the
# environment (or a .env file): SHELL_PILOT_API_KEY, then OPENAI_API_KEY.

import os
import tomllib
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

load_dotenv()

DEFAULT_SLIDES_PATH = "/tmp/shell_pilot/slides.md"
API_KEY_ENV_VARS = ("SHELL_PILOT_API_KEY", "OPENAI_API_KEY")


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or validated."""


class LlmConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_url: str = Field(..., description="OpenAI-compatible API base URL.")
    api_key: str = Field(default="")
    model: str
    system_prompt: str | None = Field(default=None, description="Overrides the built-in classifier prompt.")
    max_tokens: int = Field(default=2048, gt=0)


class ExecutorConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    working_dir: str | None = None
    timeout_secs: int = Field(default=120, gt=0, description="Per-command time limit.")
    echo_result: bool = Field(default=True, description="Include the execution report in the reply.")
    activate_venv: str | None = Field(
        default=None,
        description="Virtualenv dir or activate script sourced before every command.",
    )
    max_fix_retries: int = Field(default=10, ge=0, description="Repair attempts per failing action.")
    slides_path: str = DEFAULT_SLIDES_PATH


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    llm: LlmConfig
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    skills_dir: str | None = None

    @classmethod
    def load(cls, path: str | Path) -> "AppConfig":
        path = Path(path)
        try:
            with path.open("rb") as fh:
                data = tomllib.load(fh)
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Config file {path} is not valid TOML: {exc}") from exc

        llm = data.get("llm")
        if isinstance(llm, dict) and not llm.get("api_key"):
            for name in API_KEY_ENV_VARS:
                if os.getenv(name):
                    llm["api_key"] = os.getenv(name)
                    break

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc
