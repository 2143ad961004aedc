"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from urllib.parse import quote

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process settings.

    No env prefix: the variable names (``REDIS_HOST``, ``PIPELINE_QUEUE_NAME``,
    ...) are the ones existing deployments already set. An empty variable
    counts as unset.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
    )

    redis_host: str = "localhost"
    redis_port: int = Field(default=6379, ge=1, le=65535)
    redis_db: int = 0
    redis_password: str = ""
    redis_channel: str = "github-webhook-push"
    config_file_path: str = "config.json"
    pipeline_queue_name: str = "pipeline"
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def redis_url(self) -> str:
        auth = f":{quote(self.redis_password, safe='')}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def redis_address(self) -> str:
        return f"{self.redis_host}:{self.redis_port}"


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    if config_path is None:
        config_path = os.environ.get("DISPATCHER_CONFIG") or None

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}

    # Init kwargs outrank env in pydantic-settings, so only pass YAML keys
    # that the environment does not already set.
    env_keys = {k.upper() for k, v in os.environ.items() if v}
    overrides = {
        key: value
        for key, value in yaml_data.items()
        if key.upper() not in env_keys
    }
    return Settings(**overrides)
