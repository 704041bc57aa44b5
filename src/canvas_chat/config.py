"""
Configuration models for canvas-chat.

Configuration can be loaded from YAML files, plain dictionaries or the
environment, or constructed programmatically.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import find_dotenv, load_dotenv

ENV_PREFIX = "CANVAS_CHAT_"

# Lets from_dict tell an explicit ``stream_idle_timeout: null`` from a missing key.
_MISSING = object()


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in ("", "none", "off"):
        return None
    seconds = float(value)
    return seconds if seconds > 0 else None


@dataclass
class CanvasConfig:
    """
    Main configuration for canvas-chat.

    Example YAML:
        api_base_url: http://127.0.0.1:8000
        stream_path: /api/chat/stream
        auth_token: "eyJhbGciOi..."
        request_timeout: 30
        stream_idle_timeout: 120
        default_node_width: 400
        default_node_height: 280
        log_level: INFO
    """

    # AI service
    api_base_url: str = "http://127.0.0.1:8000"
    stream_path: str = "/api/chat/stream"
    auth_token: str | None = None  # Bearer token for the streaming endpoint

    # Timeouts (seconds)
    request_timeout: float = 30.0  # Connect/write timeout for the request
    stream_idle_timeout: float | None = 120.0  # Max gap between chunks, None = wait forever

    # Card defaults
    default_node_width: int = 400
    default_node_height: int = 280

    log_level: str = "INFO"

    @property
    def stream_url(self) -> str:
        """Full URL of the streaming chat endpoint."""
        return self.api_base_url.rstrip("/") + "/" + self.stream_path.lstrip("/")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CanvasConfig:
        """Create config from a dictionary."""
        idle = data.get("stream_idle_timeout", _MISSING)
        return cls(
            api_base_url=data.get("api_base_url", "http://127.0.0.1:8000"),
            stream_path=data.get("stream_path", "/api/chat/stream"),
            auth_token=data.get("auth_token"),
            request_timeout=float(data.get("request_timeout", 30.0)),
            stream_idle_timeout=120.0 if idle is _MISSING else _optional_float(idle),
            default_node_width=int(data.get("default_node_width", 400)),
            default_node_height=int(data.get("default_node_height", 280)),
            log_level=data.get("log_level", "INFO"),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> CanvasConfig:
        """Load config from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_yaml_string(cls, content: str) -> CanvasConfig:
        """Load config from a YAML string."""
        data = yaml.safe_load(content)
        return cls.from_dict(data or {})

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True, **overrides: Any) -> CanvasConfig:
        """
        Create config from ``CANVAS_CHAT_*`` environment variables.

        A ``.env`` file in the current directory (or a parent) is loaded
        first unless ``load_dotenv_file`` is False. Keyword overrides win
        over the environment.
        """
        if load_dotenv_file:
            load_dotenv(find_dotenv(usecwd=True))

        data: dict[str, Any] = {}
        env_map = {
            "API_BASE_URL": "api_base_url",
            "STREAM_PATH": "stream_path",
            "AUTH_TOKEN": "auth_token",
            "REQUEST_TIMEOUT": "request_timeout",
            "STREAM_IDLE_TIMEOUT": "stream_idle_timeout",
            "LOG_LEVEL": "log_level",
        }
        for env_name, key in env_map.items():
            value = os.environ.get(ENV_PREFIX + env_name)
            if value is not None:
                data[key] = value
        data.update(overrides)
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary."""
        return {
            "api_base_url": self.api_base_url,
            "stream_path": self.stream_path,
            "auth_token": self.auth_token,
            "request_timeout": self.request_timeout,
            "stream_idle_timeout": self.stream_idle_timeout,
            "default_node_width": self.default_node_width,
            "default_node_height": self.default_node_height,
            "log_level": self.log_level,
        }
