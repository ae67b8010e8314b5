"""Centralized configuration management for VNSync.

Reads from environment variables with sensible defaults.
The CLI and the library both use this module for configuration.

Environment variables follow the pattern VNSYNC_*.

Example:
    >>> from vnsync.config import get_config
    >>> config = get_config()
    >>> print(config.reconnection_attempts)
    5
"""

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

log = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "wss://vnsync-server-33vh3.ondigitalocean.app"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _getenv_int(key: str, default: int) -> int:
    """Get integer from environment with fallback to default."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        log.warning(f"Invalid integer value for {key}={value}, using default {default}")
        return default


def _getenv_float(key: str, default: float) -> float:
    """Get float from environment with fallback to default."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        log.warning(f"Invalid number for {key}={value}, using default {default}")
        return default


@dataclass
class VNSyncConfig:
    """VNSync configuration loaded from environment variables.

    Attributes
    ----------
    server_url : str
        Socket.IO endpoint of the room coordinator.
    reconnection_delay : float
        Fixed delay in seconds between two reconnection attempts.
    reconnection_attempts : int
        Maximum number of reconnection attempts before the channel gives up.
        0 means unlimited, as in python-socketio.
    clipboard_interval : float
        Period in seconds of the clipboard mirror loop.
    log_level : str
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    server_url: str = field(
        default_factory=lambda: os.getenv("VNSYNC_SERVER_URL", DEFAULT_SERVER_URL)
    )
    reconnection_delay: float = field(
        default_factory=lambda: _getenv_float("VNSYNC_RECONNECTION_DELAY", 0.5)
    )
    reconnection_attempts: int = field(
        default_factory=lambda: _getenv_int("VNSYNC_RECONNECTION_ATTEMPTS", 5)
    )
    clipboard_interval: float = field(
        default_factory=lambda: _getenv_float("VNSYNC_CLIPBOARD_INTERVAL", 0.1)
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("VNSYNC_LOG_LEVEL", "WARNING")
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()
        self._log_config()

    def _validate(self):
        """Validate configuration values.

        Raises
        ------
        ValueError
            If configuration is invalid.
        """
        scheme = urlparse(self.server_url).scheme
        if scheme not in ("ws", "wss", "http", "https"):
            raise ValueError(
                f"Invalid server URL: {self.server_url!r}. "
                "Expected a ws://, wss://, http:// or https:// URL"
            )

        if self.reconnection_attempts < 0:
            raise ValueError(
                f"Invalid reconnection attempts: {self.reconnection_attempts}. Must be >= 0"
            )

        if self.reconnection_delay < 0:
            raise ValueError(
                f"Invalid reconnection delay: {self.reconnection_delay}s. Must be >= 0"
            )

        if self.clipboard_interval <= 0:
            raise ValueError(
                f"Invalid clipboard interval: {self.clipboard_interval}s. Must be > 0"
            )

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            log.warning(
                f"Invalid log level '{self.log_level}', using WARNING. "
                f"Valid levels: {', '.join(VALID_LOG_LEVELS)}"
            )
            self.log_level = "WARNING"

    def _log_config(self):
        log.info("VNSync Configuration:")
        log.info(f"  Server: {self.server_url}")
        log.info(
            f"  Reconnection: {self.reconnection_attempts} attempts, "
            f"{self.reconnection_delay}s apart"
        )
        log.info(f"  Clipboard Interval: {self.clipboard_interval}s")
        log.info(f"  Log Level: {self.log_level}")


# Global config instance (singleton pattern)
_config: VNSyncConfig | None = None


def get_config() -> VNSyncConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = VNSyncConfig()
    return _config


def reload_config() -> VNSyncConfig:
    """Reload configuration from environment.

    Useful for testing or when environment variables change at runtime.
    """
    global _config
    _config = VNSyncConfig()
    return _config
