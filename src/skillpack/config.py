"""Local configuration: where skillpack keeps its files and the registry API key.

Layout:
    ~/.skillpack/           # or $SKILLPACK_HOME
        config.json         # {"api_key": "..."}, mode 0600
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from . import SKILLPACK_HOME

logger = logging.getLogger("skillpack.config")

DEFAULT_REGISTRY_URL = "https://api.skilzy.ai"
MIN_API_KEY_LENGTH = 10


def skillpack_home() -> Path:
    """Resolve the home directory, respecting the SKILLPACK_HOME env var."""
    env = os.environ.get("SKILLPACK_HOME")
    if env:
        return Path(env)
    return Path(SKILLPACK_HOME).expanduser()


def registry_url() -> str:
    """Registry base URL, respecting the SKILLPACK_REGISTRY_URL env var."""
    return os.environ.get("SKILLPACK_REGISTRY_URL", DEFAULT_REGISTRY_URL).rstrip("/")


class CliConfig(BaseModel):
    """Persisted CLI settings."""

    api_key: str = ""


class ConfigStore:
    """Reads and writes config.json.

    Args:
        home: Base directory (default: SKILLPACK_HOME or ~/.skillpack).
    """

    def __init__(self, home: Optional[Path] = None) -> None:
        self.home = (home or skillpack_home()).expanduser()
        self.path = self.home / "config.json"

    def load(self) -> CliConfig:
        """Load the config, or defaults if none has been saved.

        Raises:
            ValueError: If the file exists but cannot be parsed.
        """
        if not self.path.exists():
            return CliConfig()
        try:
            return CliConfig.model_validate_json(self.path.read_text(encoding="utf-8"))
        except ValidationError as exc:
            raise ValueError(f"Failed to parse config file {self.path}: {exc}") from exc

    def save(self, config: CliConfig) -> Path:
        """Write the config with owner-only permissions."""
        self.home.mkdir(parents=True, exist_ok=True)
        os.chmod(self.home, 0o700)
        self.path.write_text(json.dumps(config.model_dump(), indent=2) + "\n", encoding="utf-8")
        os.chmod(self.path, 0o600)
        logger.info("Saved config to %s", self.path)
        return self.path

    def load_api_key(self) -> str:
        """Stored API key, or '' when not logged in."""
        return self.load().api_key

    def save_api_key(self, api_key: str) -> Path:
        """Validate and store an API key.

        Raises:
            ValueError: If the key is too short.
        """
        api_key = api_key.strip()
        if len(api_key) < MIN_API_KEY_LENGTH:
            raise ValueError(f"Invalid API key: must be at least {MIN_API_KEY_LENGTH} characters")
        try:
            config = self.load()
        except ValueError:
            logger.warning("Overwriting unreadable config file %s", self.path)
            config = CliConfig()
        return self.save(config.model_copy(update={"api_key": api_key}))
