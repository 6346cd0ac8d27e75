"""Configuration management for the Chunkyard CLI."""

import json
import logging
import os
import tempfile
from pathlib import Path

from common.constants import DEFAULT_CLIENT_CHUNK_SIZE, DEFAULT_SERVER_PORT

logger = logging.getLogger(__name__)


class Config:
    """Manages CLI configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "server_host": os.environ.get("UPLOAD_SERVER_HOST", "localhost"),
        "server_port": int(os.environ.get("UPLOAD_SERVER_PORT", str(DEFAULT_SERVER_PORT))),
        "timeout": 30,
        "max_retries": 3,
        "retry_backoff_multiplier": 2,
        "chunk_size": DEFAULT_CLIENT_CHUNK_SIZE,
        "parallel_uploads": 4,
    }

    def __init__(self, config_path: Path):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.chunkyard/config.json)
        """
        self.config_path = config_path
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            self.config_path = Path(tempfile.gettempdir()) / '.chunkyard' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        config = self.DEFAULT_CONFIG.copy()

        if not self.config_path.exists():
            self.data = config
            self.save()
            return config

        try:
            with open(self.config_path, 'r') as f:
                config.update(json.load(f))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable config file {self.config_path}: {e}")
        return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except OSError as e:
            logger.warning(f"Could not save config file {self.config_path}: {e}")

    def get_base_url(self) -> str:
        """
        Get upload server base URL.

        Returns:
            Base URL string (e.g., "http://localhost:3000")
        """
        host = self.data.get('server_host', 'localhost')
        port = self.data.get('server_port', DEFAULT_SERVER_PORT)
        return f"http://{host}:{port}"

    def get_timeout(self) -> int:
        return self.data.get('timeout', 30)

    def get_chunk_size(self) -> int:
        return self.data.get('chunk_size', DEFAULT_CLIENT_CHUNK_SIZE)

    def get_parallel_uploads(self) -> int:
        return max(1, self.data.get('parallel_uploads', 4))

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries' and 'retry_backoff_multiplier'
        """
        return {
            'max_retries': self.data.get('max_retries', 3),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', 2),
        }
