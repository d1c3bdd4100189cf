from typing import Dict, Any
import json
import os

POSITIVE_INTEGERS = ("backlog", "buffer_size")
POSITIVE_NUMBERS = ("accept_interval",)


class GatewayConfig:
    """Configuration manager for the relay gateway."""

    def __init__(self, config_path: str = None):
        """
        Initialize configuration with optional config file path.

        Args:
            config_path: Path to JSON configuration file
        """
        self.config_path = config_path
        self.config = self._load_default_config()

        if config_path and os.path.exists(config_path):
            self._load_config_file()
            self._validate()

    def _load_default_config(self) -> Dict[str, Any]:
        """Load default configuration settings."""
        return {
            "host": "0.0.0.0",
            "backlog": 128,
            "buffer_size": 4096,
            "accept_interval": 0.5,  # seconds between stop-signal checks
            "log_level": "INFO",
            "log_format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        }

    def _load_config_file(self) -> None:
        """Load configuration from JSON file."""
        try:
            with open(self.config_path, 'r') as f:
                file_config = json.load(f)
        except (OSError, ValueError) as e:
            raise ValueError(f"Error loading config file: {e}")

        if not isinstance(file_config, dict):
            raise ValueError("Config file must hold a JSON object")
        self.config.update(file_config)

    def _validate(self) -> None:
        """Reject values the listener cannot work with."""
        for key in POSITIVE_INTEGERS:
            value = self.config[key]
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{key} must be a positive integer, got {value!r}")
        for key in POSITIVE_NUMBERS:
            value = self.config[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ValueError(f"{key} must be a positive number, got {value!r}")

    def get(self, key: str) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key

        Returns:
            Configuration value, or None for an unknown key
        """
        return self.config.get(key)
