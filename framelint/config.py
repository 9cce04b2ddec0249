"""Configuration management for framelint.

Loads environment variables (and a ``.env`` file in the working directory)
and the project's JSON rule configuration. Only the CLI reads this module;
the analyzer gets everything it needs passed in.
"""
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .rules.options import DEFAULT_MAX_CALL_DEPTH

__version__ = "0.3.0"

DEFAULT_CONFIG_FILE = ".framelintrc.json"


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_file: Optional[Path] = None):
        """Initialize config by loading a .env file.

        Args:
            env_file: .env file to load; defaults to ./.env
        """
        load_dotenv(env_file or Path.cwd() / ".env")

    @property
    def config_file(self) -> Path:
        """Project configuration file (``FRAMELINT_CONFIG``)."""
        return Path(os.getenv("FRAMELINT_CONFIG", DEFAULT_CONFIG_FILE))

    @property
    def preset(self) -> str:
        """Preset used when the project config does not extend one."""
        return os.getenv("FRAMELINT_PRESET", "recommended")

    @property
    def max_call_depth(self) -> int:
        """Default ``maxCallDepth`` for rules that leave it unset.

        Raises:
            ConfigurationError: If FRAMELINT_MAX_CALL_DEPTH is not a non-negative integer
        """
        raw = os.getenv("FRAMELINT_MAX_CALL_DEPTH")
        if raw is None or raw.strip() == "":
            return DEFAULT_MAX_CALL_DEPTH
        try:
            value = int(raw)
        except ValueError:
            raise ConfigurationError(f"FRAMELINT_MAX_CALL_DEPTH must be an integer, got {raw!r}")
        if value < 0:
            raise ConfigurationError(f"FRAMELINT_MAX_CALL_DEPTH must be >= 0, got {value}")
        return value

    @property
    def log_level(self) -> str:
        return os.getenv("FRAMELINT_LOG_LEVEL", "WARNING")


def load_project_config(path: Path) -> Dict[str, Any]:
    """Read a JSON project configuration.

    Shape::

        {"extends": "recommended",
         "rules": {"framelint/no-clone-in-loop": ["error", {"maxCallDepth": 3}]}}

    Returns:
        The parsed configuration, or an empty dict if the file does not exist

    Raises:
        ConfigurationError: If the file is not valid JSON or not an object
    """
    path = Path(path)
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{path}: invalid JSON ({exc.msg} at line {exc.lineno})")
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: configuration must be a JSON object")
    for key in data:
        if key not in ("extends", "rules"):
            raise ConfigurationError(f"{path}: unknown key {key!r}")
    if not isinstance(data.get("extends", ""), str):
        raise ConfigurationError(f"{path}: \"extends\" must be a preset name")
    if not isinstance(data.get("rules", {}), dict):
        raise ConfigurationError(f"{path}: \"rules\" must be an object")
    return data


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
