"""
Module for loading uploader configuration.
"""
import json
import logging
import tempfile
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ConfigError
from .uploader import DEFAULT_BUZZHEAVIER_HOST, DEFAULT_GOFILE_API, DEFAULT_LOCATION_ID

logger = logging.getLogger(__name__)

DEFAULT_SIMPLIFY_EXTENSIONS = [".zip", ".rar", ".7z", ".tar", ".gz", ".tgz"]

_NUMERIC_KEYS = (
    "transfer_timeout",
    "poll_interval",
    "rate_interval",
    "min_display_seconds",
    "connect_timeout",
)
_STRING_KEYS = (
    "log_dir",
    "scratch_dir",
    "gofile_api",
    "buzzheavier_upload_host",
    "buzzheavier_location_id",
)
_LIST_KEYS = ("simplify_extensions", "required_tools")


@dataclass
class UploaderConfig:
    """Settings for one uploader invocation."""
    log_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()) / "uploadem-logs")
    scratch_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    transfer_timeout: float = 3600
    poll_interval: float = 0.2
    rate_interval: float = 0.5
    min_display_seconds: float = 1.5
    connect_timeout: float = 30
    gofile_api: str = DEFAULT_GOFILE_API
    buzzheavier_upload_host: str = DEFAULT_BUZZHEAVIER_HOST
    buzzheavier_location_id: str = DEFAULT_LOCATION_ID
    simplify_extensions: List[str] = field(
        default_factory=lambda: list(DEFAULT_SIMPLIFY_EXTENSIONS)
    )
    required_tools: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UploaderConfig":
        """Build a config from loaded JSON values.

        Args:
            data: Mapping of config keys to values

        Returns:
            UploaderConfig with defaults for missing keys

        Raises:
            ConfigError: If a value has the wrong type or is negative
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            values[key] = value

        for key in _NUMERIC_KEYS:
            if key in values:
                value = values[key]
                if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                    raise ConfigError(f"{key} must be a non-negative number, got {value!r}")

        for key in _STRING_KEYS:
            if key in values and not isinstance(values[key], str):
                raise ConfigError(f"{key} must be a string, got {values[key]!r}")

        for key in _LIST_KEYS:
            if key in values:
                value = values[key]
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise ConfigError(f"{key} must be a list of strings, got {value!r}")

        for key in ("log_dir", "scratch_dir"):
            if key in values:
                values[key] = Path(values[key]).expanduser()

        if "simplify_extensions" in values:
            values["simplify_extensions"] = [
                ext.lower() if ext.startswith(".") else f".{ext.lower()}"
                for ext in values["simplify_extensions"]
            ]

        return cls(**values)


def load_config(config_file: Optional[Path] = None) -> dict:
    """Load configuration from a JSON file.

    Args:
        config_file: Path to config file

    Returns:
        Dictionary of configuration values
    """
    if not config_file:
        return {}

    try:
        with open(config_file) as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading config file: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Config file {config_file} does not hold a JSON object")
        return {}
    return data
