# config.py
# Environment-driven settings for applications embedding taskloop.
#
# The runtime classes never read the environment themselves; an entry point
# builds Settings once and passes plain values down.

import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator

from taskloop.models import AgentConfig

ENV_PREFIX = "TASKLOOP_"


class Settings(BaseModel):
    max_iterations: int = Field(default=10, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    capability_timeout: float = Field(default=0.0, ge=0.0, description="Seconds; 0 disables the deadline.")
    memory_path: Path = Path("./data/memory.json")
    autosave_interval: float = Field(default=0.0, ge=0.0, description="Seconds; 0 disables autosave.")
    short_term_size: int = Field(default=100, gt=0)
    log_level: str = "WARNING"
    verbose: bool = False

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}:
            raise ValueError(f"Unknown log level: {value!r}")
        return level

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "Settings":
        """
        Build settings from TASKLOOP_* variables (and a .env file found from the
        working directory upwards, if any).

        Unset variables fall back to the field defaults. Invalid values raise
        pydantic.ValidationError.
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        raw = {
            name: os.environ[ENV_PREFIX + name.upper()]
            for name in cls.model_fields
            if ENV_PREFIX + name.upper() in os.environ
        }
        return cls.model_validate(raw)

    def agent_config(self, name: str, description: str, **overrides) -> AgentConfig:
        values = {
            "name": name,
            "description": description,
            "max_iterations": self.max_iterations,
            "temperature": self.temperature,
            "verbose": self.verbose,
        }
        values.update(overrides)
        return AgentConfig(**values)
