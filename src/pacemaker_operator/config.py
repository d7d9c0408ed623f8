"""Configuration management with validation.

Invalid settings are collected and reported together at load time so the
operator never starts half-configured.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .commands import DEFAULT_CRM_BINARY, DEFAULT_CRM_RESOURCE_BINARY


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_COMMAND_TIMEOUT_SECONDS = 60
MIN_COMMAND_TIMEOUT_SECONDS = 1
MAX_COMMAND_TIMEOUT_SECONDS = 3600

DEFAULT_LOG_LEVEL = "INFO"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Declaration files are small; anything larger is a mistake
MAX_SPEC_FILE_SIZE_BYTES = 1024 * 1024  # 1MB max spec file


@dataclass(frozen=True)
class Config:
    """Operator configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing at runtime.
    """

    # Cluster tools
    crm_binary: str = DEFAULT_CRM_BINARY
    crm_resource_binary: str = DEFAULT_CRM_RESOURCE_BINARY
    command_timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT_SECONDS

    # Declarations (only required by the one-shot entry point)
    spec_file: Path | None = None

    # Behavior
    dry_run: bool = False
    strict_object_kind: bool = False  # Fail instead of treating non-primitives as absent
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.crm_binary:
            errors.append("CRM_BINARY must not be empty")
        if not self.crm_resource_binary:
            errors.append("CRM_RESOURCE_BINARY must not be empty")

        if not (
            MIN_COMMAND_TIMEOUT_SECONDS
            <= self.command_timeout_seconds
            <= MAX_COMMAND_TIMEOUT_SECONDS
        ):
            errors.append(
                f"COMMAND_TIMEOUT must be between {MIN_COMMAND_TIMEOUT_SECONDS} "
                f"and {MAX_COMMAND_TIMEOUT_SECONDS} seconds"
            )

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {list(VALID_LOG_LEVELS)}: {self.log_level}")

        if self.spec_file is not None and not self.spec_file.is_file():
            errors.append(f"Spec file does not exist: {self.spec_file}")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def log_level_number(self) -> int:
        """Numeric logging level for the configured level name."""
        return logging.getLevelName(self.log_level.upper())

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            CRM_BINARY: crm shell executable (default: crm)
            CRM_RESOURCE_BINARY: crm_resource executable (default: crm_resource)
            COMMAND_TIMEOUT: Seconds allowed per cluster command (default: 60)
            SPEC_FILE: Path to the YAML declaration file
            DRY_RUN: If "true", compute commands without applying (default: false)
            STRICT_OBJECT_KIND: If "true", a same-named non-primitive CIB object
                is an error instead of being treated as absent (default: false)
            LOG_LEVEL: Logging level name (default: INFO)
        """

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        spec_file = os.environ.get("SPEC_FILE")

        return cls(
            crm_binary=os.environ.get("CRM_BINARY", DEFAULT_CRM_BINARY),
            crm_resource_binary=os.environ.get("CRM_RESOURCE_BINARY", DEFAULT_CRM_RESOURCE_BINARY),
            command_timeout_seconds=get_int("COMMAND_TIMEOUT", DEFAULT_COMMAND_TIMEOUT_SECONDS),
            spec_file=Path(spec_file) if spec_file else None,
            dry_run=get_bool("DRY_RUN", False),
            strict_object_kind=get_bool("STRICT_OBJECT_KIND", False),
            log_level=os.environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )
