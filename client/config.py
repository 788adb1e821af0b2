from __future__ import annotations
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from shared.log import get_logger
from shared.utils import is_ws_url

logger = get_logger(__name__)

SERVER_URL_ENV = "AGENT_SERVER_URL"
DEFAULT_SERVER_URL = "ws://localhost:3000/ws"


class ConfigError(Exception):
    """Raised when a config file or override holds an unusable value."""
    pass


@dataclass(frozen=True)
class ClientConfig:
    """Settings for one demo run. Delays are seconds measured from connection open."""
    url: str = DEFAULT_SERVER_URL
    first_prompt: str = "Hello! Can you tell me a short joke about programming?"
    follow_up_prompt: str = "Now tell me one about TypeScript."
    follow_up_delay: float = 5.0
    close_delay: float = 15.0
    open_timeout: float = 10.0

    def with_overrides(self, **overrides: Any) -> 'ClientConfig':
        """Return a validated copy with every non-None override applied"""
        unknown = set(overrides) - _FIELD_NAMES
        if unknown:
            raise ConfigError(f"Unknown config keys: {sorted(unknown)}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        updated = replace(self, **changes)
        updated.validate()
        return updated

    def validate(self) -> None:
        if not isinstance(self.url, str) or not is_ws_url(self.url):
            raise ConfigError(f"'url' must be a ws:// or wss:// URL, got {self.url!r}")
        for name in ("first_prompt", "follow_up_prompt"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"'{name}' must be a non-empty string")
        for name in ("follow_up_delay", "close_delay", "open_timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigError(f"'{name}' must be a positive number, got {value!r}")
        if self.follow_up_delay >= self.close_delay:
            raise ConfigError("'follow_up_delay' must be shorter than 'close_delay'")


_FIELD_NAMES = {f.name for f in fields(ClientConfig)}


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def load_config(path: Optional[Path] = None) -> ClientConfig:
    """
    Build the client configuration.

    Precedence (lowest first): built-in defaults, the YAML file at `path`,
    the AGENT_SERVER_URL environment variable. Command line options are
    applied afterwards by the caller through `with_overrides`.

    Example file:
        url: ws://localhost:3000/ws
        first_prompt: Hello!
        follow_up_delay: 5
        close_delay: 15
    """
    values: Dict[str, Any] = {}
    if path is not None:
        values.update(_read_yaml(path))
        logger.debug("Loaded config file %s", path)

    env_url = os.getenv(SERVER_URL_ENV)
    if env_url:
        values["url"] = env_url

    return ClientConfig().with_overrides(**values)
