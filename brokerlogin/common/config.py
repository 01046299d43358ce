"""Client configuration file loading and management"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from brokerlogin.common.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_URL = "tcp://localhost:3755"
DEFAULT_HEARTBEAT_INTERVAL = "1m"

_DURATION_UNITS: Dict[str, float] = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}
_DURATION_GROUP = re.compile(r"\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)?\s*")


def duration_parse(text: str) -> timedelta:
    """
    Parse a human duration string such as "1m", "90s", "1h30m" or "250ms"

    Args:
        text: Duration text. A bare number is taken as seconds.

    Returns:
        Parsed duration

    Raises:
        ValueError: If text is empty or contains anything but number/unit groups
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError(f"Invalid duration: {text!r}")

    seconds: float = 0.0
    position: int = 0
    while position < len(text):
        match = _DURATION_GROUP.match(text, position)
        if match is None or match.end() == position:
            raise ValueError(f"Invalid duration: {text!r}")
        unit: str = match.group(2) or "s"
        seconds += float(match.group(1)) * _DURATION_UNITS[unit]
        position = match.end()

    return timedelta(seconds=seconds)


@dataclass
class ClientConfig:
    """Persisted client configuration"""
    url: str
    device_id: Optional[str] = None
    mount: Optional[str] = None
    heartbeat_interval: str = DEFAULT_HEARTBEAT_INTERVAL
    reconnect_interval: Optional[str] = None

    def heartbeatInterval_get(self) -> timedelta:
        """Heartbeat interval as a duration"""
        return duration_parse(self.heartbeat_interval)

    def reconnectInterval_get(self) -> Optional[timedelta]:
        """Reconnect interval as a duration, or None when not configured"""
        if self.reconnect_interval is None:
            return None
        return duration_parse(self.reconnect_interval)


class ConfigLoader:
    """Loads, creates and saves client configuration YAML files"""

    @staticmethod
    def configDefault_create() -> ClientConfig:
        """
        Build the default configuration record

        Returns:
            ClientConfig pointing at the local broker with a 1m heartbeat
        """
        return ClientConfig(
            url=DEFAULT_URL,
            device_id=None,
            mount=None,
            heartbeat_interval=DEFAULT_HEARTBEAT_INTERVAL,
            reconnect_interval=None,
        )

    @staticmethod
    def yaml_load(file_path: Path) -> Dict[str, Any]:
        """
        Load YAML configuration file

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If file does not exist
            yaml.YAMLError: If file is not valid YAML
            ValueError: If the document is not a mapping
        """
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Config file {file_path} must contain a YAML dictionary")

        return data

    @staticmethod
    def config_parse(data: Dict[str, Any]) -> ClientConfig:
        """
        Parse configuration dictionary into ClientConfig

        Args:
            data: Raw configuration dictionary

        Returns:
            Parsed ClientConfig

        Raises:
            KeyError: If `url` is missing
            ValueError: If a field has the wrong type or a duration is malformed
        """
        url = data["url"]
        if not isinstance(url, str):
            raise ValueError(f"url must be a string, got {type(url).__name__}")

        heartbeat_interval = data.get("heartbeat_interval")
        if heartbeat_interval is None:
            heartbeat_interval = DEFAULT_HEARTBEAT_INTERVAL

        config = ClientConfig(
            url=url,
            device_id=ConfigLoader.optionalString_get(data, "device_id"),
            mount=ConfigLoader.optionalString_get(data, "mount"),
            heartbeat_interval=str(heartbeat_interval),
            reconnect_interval=ConfigLoader.optionalString_get(data, "reconnect_interval"),
        )

        # Durations stay strings in the record; reject bad ones at load time
        config.heartbeatInterval_get()
        config.reconnectInterval_get()
        return config

    @staticmethod
    def optionalString_get(data: Dict[str, Any], key: str) -> Optional[str]:
        """
        Read an optional scalar field as a string

        Args:
            data: Raw configuration dictionary
            key: Field name

        Returns:
            String value, or None when absent or null
        """
        value = data.get(key)
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError(f"{key} must be a string, got a boolean")
        if isinstance(value, (dict, list)):
            raise ValueError(f"{key} must be a scalar value")
        return str(value)

    @staticmethod
    def config_load(file_path: Path) -> ClientConfig:
        """
        Load configuration from file

        Args:
            file_path: Path to config file

        Returns:
            Parsed ClientConfig

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        file_path = Path(file_path)
        try:
            data = ConfigLoader.yaml_load(file_path)
            return ConfigLoader.config_parse(data)
        except (OSError, yaml.YAMLError, KeyError, ValueError) as exc:
            raise ConfigError(
                f"Cannot read config file: {file_path} - {exc}", file_path
            ) from exc

    @staticmethod
    def config_save(config: ClientConfig, file_path: Path) -> None:
        """
        Write configuration to file, creating missing parent directories

        Args:
            config: Configuration to persist
            file_path: Destination path

        Raises:
            ConfigError: If the directory cannot be created or the file written
        """
        file_path = Path(file_path)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(asdict(config), f, sort_keys=False, default_flow_style=False)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(
                f"Cannot write config file: {file_path} - {exc}", file_path
            ) from exc

    @staticmethod
    def configOrDefault_load(file_path: Path, create_if_missing: bool = False) -> ClientConfig:
        """
        Load configuration, or fall back to defaults when no file exists

        An existing but invalid file is an error, never a reason to use
        defaults.

        Args:
            file_path: Path to config file
            create_if_missing: Persist the default config when the file is absent

        Returns:
            Loaded or default ClientConfig

        Raises:
            ConfigError: If an existing file is invalid, or persisting defaults fails
        """
        file_path = Path(file_path)
        if file_path.exists():
            logger.info("Loading config file %s", file_path)
            return ConfigLoader.config_load(file_path)

        config = ConfigLoader.configDefault_create()
        if create_if_missing:
            logger.info("Creating default config file: %s", file_path)
            ConfigLoader.config_save(config, file_path)
        return config
