"""Configuration loading for the CLI.

Values come from defaults, then ``~/.lbreaper/config.yaml`` (or an explicit
path), then environment variables. Command-line options override all of them.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".lbreaper" / "config.yaml"

# Environment variable -> config field
ENV_OVERRIDES = {
    "AWS_PROFILE": "aws_profile",
    "AWS_DEFAULT_REGION": "region",
    "AWS_REGION": "region",
    "LBREAPER_LOG_LEVEL": "log_level",
    "LBREAPER_POLL_INTERVAL": "poll_interval_seconds",
    "LBREAPER_DELETION_WAIT": "deletion_wait_seconds",
    "LBREAPER_RECREATION_TIMEOUT": "recreation_timeout_seconds",
    "LBREAPER_KUBECONFIG": "kubeconfig",
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class Config:
    """Runtime configuration.

    Attributes:
        aws_profile: AWS profile name (optional)
        region: AWS region (optional)
        log_level: Default log level
        poll_interval_seconds: Interval between polls in the waiter and poller
        deletion_wait_seconds: Max wait for the old load balancer to disappear
        recreation_timeout_seconds: Max wait for a replacement load balancer
        connect_timeout_seconds: Per-call connect timeout
        read_timeout_seconds: Per-call read timeout
        max_attempts: botocore attempts per call
        security_group_retries: Attempts per security group while still in use
        kubeconfig: kubeconfig path for service lookups (optional)
    """

    aws_profile: Optional[str] = None
    region: Optional[str] = None
    log_level: str = "INFO"
    poll_interval_seconds: float = 10.0
    deletion_wait_seconds: float = 300.0
    recreation_timeout_seconds: float = 900.0
    connect_timeout_seconds: float = 10.0
    read_timeout_seconds: float = 30.0
    max_attempts: int = 3
    security_group_retries: int = 5
    kubeconfig: Optional[str] = None

    @classmethod
    def load(cls, path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> Config:
        """Load configuration from file and environment.

        Args:
            path: Config file path (default: ~/.lbreaper/config.yaml, skipped if missing)
            environ: Environment mapping (default: os.environ)

        Returns:
            Validated Config

        Raises:
            ValueError: If the file or any value is invalid
            FileNotFoundError: If an explicit path does not exist
        """
        values: Dict[str, Any] = {}

        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        if config_path.exists():
            values.update(cls._read_file(config_path))
        elif path:
            raise FileNotFoundError(f"Config file not found: {path}")

        env = os.environ if environ is None else environ
        for env_name, field_name in ENV_OVERRIDES.items():
            if env.get(env_name):
                values[field_name] = env[env_name]

        return cls.from_dict(values)

    @staticmethod
    def _read_file(path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        logger.debug(f"Loaded config from {path}")
        return data

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> Config:
        known = {f.name: f for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in values.items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            kwargs[key] = cls._coerce(key, value, known[key].default)

        config = cls(**kwargs)
        config.validate()
        return config

    @staticmethod
    def _coerce(key: str, value: Any, default: Any) -> Any:
        if value is None:
            return None
        try:
            if isinstance(default, bool):
                return str(value).lower() in ("1", "true", "yes")
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value for {key}: {value!r}") from e
        return str(value)

    def validate(self) -> bool:
        """Validate configuration values.

        Raises:
            ValueError: If any value is out of range
        """
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")
        for name in (
            "poll_interval_seconds",
            "deletion_wait_seconds",
            "recreation_timeout_seconds",
            "connect_timeout_seconds",
            "read_timeout_seconds",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.max_attempts < 1 or self.security_group_retries < 1:
            raise ValueError("max_attempts and security_group_retries must be at least 1")
        return True

    @property
    def client_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``create_boto_client``."""
        return {
            "connect_timeout": self.connect_timeout_seconds,
            "read_timeout": self.read_timeout_seconds,
            "max_attempts": self.max_attempts,
        }
