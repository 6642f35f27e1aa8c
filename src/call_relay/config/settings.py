"""
Configuration management for the call relay system.

Settings are read from the environment, optionally seeded from a .env file,
and validated before the server or the client starts.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from ..core.types import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_ID_MIN,
    DEFAULT_ID_MAX,
    DEFAULT_WEBSOCKET_URL,
)
from ..infrastructure.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class RelayConfig:
    """Configuration shared by the relay server and the session client."""

    # Relay server
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    id_min: int = DEFAULT_ID_MIN
    id_max: int = DEFAULT_ID_MAX
    max_connections: int = 1000
    ping_interval: float = 30.0
    max_message_size: int = 2**20

    # Session client
    server_url: str = DEFAULT_WEBSOCKET_URL
    connect_retries: int = 5
    retry_delay: float = 1.0
    audio_device: Optional[str] = None
    audio_format: Optional[str] = None

    log_level: str = "INFO"

    @property
    def id_space_size(self) -> int:
        """Number of identifiers the server can hand out."""
        return self.id_max - self.id_min + 1

    def validate(self) -> None:
        """
        Validate the configuration.

        Raises:
            ValidationError: If any value is out of range
        """
        if not 0 <= self.port <= 65535:
            raise ValidationError(f"port must be between 0 and 65535, got {self.port}")
        if self.id_min < 0:
            raise ValidationError(f"id_min must be non-negative, got {self.id_min}")
        if self.id_min > self.id_max:
            raise ValidationError(
                f"id_min ({self.id_min}) must not exceed id_max ({self.id_max})"
            )
        if self.max_connections < 1:
            raise ValidationError("max_connections must be at least 1")
        if self.max_connections > self.id_space_size:
            raise ValidationError(
                f"max_connections ({self.max_connections}) exceeds the identifier "
                f"space ({self.id_space_size})"
            )
        if self.ping_interval <= 0:
            raise ValidationError("ping_interval must be positive")
        if self.max_message_size <= 0:
            raise ValidationError("max_message_size must be positive")
        if not self.server_url.startswith(("ws://", "wss://")):
            raise ValidationError("server_url must start with 'ws://' or 'wss://'")
        if self.connect_retries < 1:
            raise ValidationError("connect_retries must be at least 1")
        if self.retry_delay < 0:
            raise ValidationError("retry_delay must be non-negative")


class RelayConfigManager:
    """Loads RelayConfig from the environment."""

    def __init__(self, env_file_path: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to environment file
        """
        self.env_file_path = env_file_path
        self._load_environment()

    def _load_environment(self) -> None:
        """Load environment variables from file."""
        if os.path.exists(self.env_file_path):
            load_dotenv(dotenv_path=self.env_file_path)
            logger.info(f"Loaded environment from {self.env_file_path}")
        else:
            logger.debug(f"Environment file {self.env_file_path} not found")

    def _get_optional_env(self, key: str, default: str = None) -> Optional[str]:
        """Get optional environment variable."""
        return os.getenv(key, default)

    def _get_int_env(self, key: str, default: int) -> int:
        value = self._get_optional_env(key)
        if value is None or value.strip() == "":
            return default
        try:
            return int(value)
        except ValueError:
            raise ValidationError(f"{key} must be an integer, got {value!r}")

    def _get_float_env(self, key: str, default: float) -> float:
        value = self._get_optional_env(key)
        if value is None or value.strip() == "":
            return default
        try:
            return float(value)
        except ValueError:
            raise ValidationError(f"{key} must be a number, got {value!r}")

    def get_config(self) -> RelayConfig:
        """
        Get the relay configuration.

        Returns:
            RelayConfig: Validated configuration

        Raises:
            ValidationError: If a value is malformed or out of range
        """
        try:
            config = RelayConfig(
                host=self._get_optional_env("RELAY_HOST", DEFAULT_HOST),
                port=self._get_int_env("RELAY_PORT", DEFAULT_PORT),
                id_min=self._get_int_env("RELAY_ID_MIN", DEFAULT_ID_MIN),
                id_max=self._get_int_env("RELAY_ID_MAX", DEFAULT_ID_MAX),
                max_connections=self._get_int_env("RELAY_MAX_CONNECTIONS", 1000),
                ping_interval=self._get_float_env("RELAY_PING_INTERVAL", 30.0),
                max_message_size=self._get_int_env("RELAY_MAX_MESSAGE_SIZE", 2**20),
                server_url=self._get_optional_env(
                    "RELAY_SERVER_URL", DEFAULT_WEBSOCKET_URL
                ),
                connect_retries=self._get_int_env("RELAY_CONNECT_RETRIES", 5),
                retry_delay=self._get_float_env("RELAY_RETRY_DELAY", 1.0),
                audio_device=self._get_optional_env("AUDIO_DEVICE"),
                audio_format=self._get_optional_env("AUDIO_FORMAT"),
                log_level=self._get_optional_env("LOG_LEVEL", "INFO"),
            )
            config.validate()

            logger.debug("Configuration loaded successfully")
            return config

        except Exception as e:
            logger.error(f"Failed to load configuration: {e}")
            raise
