"""
NAPS Pay SDK - Configuration Management

Terminal connection settings, phase timeouts and gateway notification
settings. Configuration can be built directly, loaded from a YAML file or
from environment variables.
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .exceptions import ConfigurationException
from .logging_setup import configure_logging

logger = logging.getLogger(__name__)

# Timeouts are expressed in seconds.
DEFAULT_PORT = 4444
DEFAULT_TIMEOUT = 120.0
DEFAULT_CONFIRMATION_TIMEOUT = 40.0
DEFAULT_DRAIN_TIMEOUT = 0.5
DEFAULT_TEST_CONNECTION_TIMEOUT = 5.0
DEFAULT_NOTIFICATION_TIMEOUT = 10.0
MIN_TIMEOUT = 1.0

DEFAULT_GATEWAY_URL = "https://api.tkpay.ma"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class NapsConfig:
    """Connection and behaviour settings for one NAPS Pay terminal."""

    host: str = ""
    port: int = DEFAULT_PORT

    # Phase 1 waits for the customer to present a card, phase 2 only for
    # the terminal to finalize.
    timeout: float = DEFAULT_TIMEOUT
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    drain_timeout: float = DEFAULT_DRAIN_TIMEOUT
    test_connection_timeout: float = DEFAULT_TEST_CONNECTION_TIMEOUT

    encoding: str = "utf-8"

    # Gateway notifications
    notifications_enabled: bool = True
    gateway_url: str = DEFAULT_GATEWAY_URL
    notification_timeout: float = DEFAULT_NOTIFICATION_TIMEOUT

    log_level: str = "INFO"

    def __post_init__(self):
        if not self.host:
            raise ConfigurationException("Terminal host is required", config_key="host")

        try:
            self.port = int(self.port)
        except (TypeError, ValueError):
            raise ConfigurationException(f"Invalid port: {self.port!r}", config_key="port")
        if not 0 < self.port < 65536:
            raise ConfigurationException(f"Port out of range: {self.port}", config_key="port")

        self.timeout = self._clamp_timeout("timeout", self.timeout)
        self.confirmation_timeout = self._clamp_timeout(
            "confirmation_timeout", self.confirmation_timeout
        )

        if float(self.drain_timeout) <= 0:
            raise ConfigurationException(
                "drain_timeout must be positive", config_key="drain_timeout"
            )
        self.drain_timeout = float(self.drain_timeout)
        self.test_connection_timeout = float(self.test_connection_timeout)
        self.notification_timeout = float(self.notification_timeout)
        self.gateway_url = self.gateway_url.rstrip("/")

        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationException(
                f"Invalid log level: {self.log_level!r}", config_key="log_level"
            )

    @staticmethod
    def _clamp_timeout(name: str, value: Any) -> float:
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ConfigurationException(f"Invalid {name}: {value!r}", config_key=name)

        if value < MIN_TIMEOUT:
            logger.warning(
                "NapsConfig.%s (%.3fs) is too low. Using minimum value: %.1fs",
                name,
                value,
                MIN_TIMEOUT,
            )
            return MIN_TIMEOUT
        return value

    @classmethod
    def load_from_file(cls, config_path: Union[str, Path]) -> "NapsConfig":
        """Load configuration from YAML file."""
        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigurationException(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Invalid YAML in configuration file: {e}")

        # Accept either a flat mapping or one nested under "naps_pay"
        if isinstance(config_data, dict) and isinstance(config_data.get("naps_pay"), dict):
            config_data = config_data["naps_pay"]
        if not isinstance(config_data, dict):
            raise ConfigurationException(
                f"Configuration file must contain a mapping: {config_path}"
            )

        return cls._from_dict(config_data)

    @classmethod
    def load_from_env(
        cls, prefix: str = "NAPS_PAY_", environ: Optional[Dict[str, str]] = None
    ) -> "NapsConfig":
        """Load configuration from environment variables."""
        environ = os.environ if environ is None else environ

        data: Dict[str, Any] = {}
        for config_field in fields(cls):
            raw = environ.get(f"{prefix}{config_field.name.upper()}")
            if raw is None:
                continue
            if config_field.type in (bool, "bool"):
                data[config_field.name] = raw.strip().lower() in ("1", "true", "yes", "on")
            else:
                data[config_field.name] = raw

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "NapsConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown configuration keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def configure_logging(self) -> logging.Logger:
        """Install the SDK log handler at ``log_level``."""
        return configure_logging(self.log_level)
