"""Application configuration module.

This module contains settings for the URL shortener service, loaded from
environment variables, command-line flags and defaults. Environment
variables take precedence over flags, and flags over defaults.
"""

from __future__ import annotations

import argparse
import logging
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

from pydantic import Field, computed_field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

logger = logging.getLogger(__name__)

# Flag name -> settings field, matching the flags the service has always accepted
CLI_FLAGS: Dict[str, str] = {
    "-a": "SERVER_ADDRESS",
    "-b": "BASE_URL",
    "-f": "FILE_STORAGE_PATH",
    "-d": "DATABASE_DSN",
}


class EnvironmentType(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class StorageBackend(str, Enum):
    MEMORY = "memory"
    FILE = "file"
    DATABASE = "database"


class Settings(BaseSettings):
    """Service settings.

    Values are resolved from environment variables first, then from
    explicit keyword arguments (which is how command-line flags are passed
    in, see `from_args`), then from a `.env` file, and finally from the
    defaults declared here.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT

    # App Information
    APP_NAME: str = "URL Shortener"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Short token generation and resolution service"
    DEBUG: bool = False
    API_PREFIX: str = "/api"

    # Network configuration
    SERVER_ADDRESS: str = "localhost:8080"  # Address the HTTP server listens on
    BASE_URL: str = "http://localhost:8080"  # Prefix of every short URL handed out

    # Storage configuration
    FILE_STORAGE_PATH: str = ""  # JSON-lines file, empty disables file storage
    DATABASE_DSN: str = ""  # Database DSN, empty disables database storage
    DB_ECHO: bool = False

    # Token generation
    TOKEN_LENGTH: int = Field(default=8, ge=1, le=8)
    TOKEN_MAX_ATTEMPTS: int = Field(default=10, ge=1)  # Collision retry ceiling

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = ""  # Empty disables the file sink
    LOG_FILENAME: str = "app.log"
    LOG_ROTATION: str = "10 MB"
    LOG_RETENTION: str = "7 days"
    LOG_FORMAT: str = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {name}:{function}:{line} | {message}"
    LOG_JSON: bool = False
    REQUEST_LOGGING_ENABLED: bool = True

    # OpenTelemetry configuration
    OTEL_ENABLED: bool = False
    OTEL_SERVICE_NAME: str = "url-shortener"
    OTEL_EXPORTER_OTLP_ENDPOINT: str = "http://localhost:4317"
    OTEL_EXPORTER_OTLP_PROTOCOL: str = "grpc"  # grpc or http/protobuf
    OTEL_TRACES_SAMPLER_ARG: float = Field(default=1.0, ge=0.0, le=1.0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats flags, flags beat .env and defaults
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @field_validator("BASE_URL")
    def strip_trailing_slash(cls, v: str) -> str:
        """Short URLs are composed as BASE_URL + "/" + token."""
        v = v.strip()
        if not v:
            raise ValueError("BASE_URL must not be empty")
        return v.rstrip("/")

    @field_validator("SERVER_ADDRESS")
    def validate_server_address(cls, v: str) -> str:
        host, sep, port = v.strip().rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"SERVER_ADDRESS must look like host:port, got {v!r}")
        return v.strip()

    @field_validator("LOG_LEVEL")
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @computed_field
    def server_host(self) -> str:
        """Host part of SERVER_ADDRESS; an empty host listens on all interfaces."""
        host = self.SERVER_ADDRESS.rpartition(":")[0]
        return host or "0.0.0.0"

    @computed_field
    def server_port(self) -> int:
        """Port part of SERVER_ADDRESS."""
        return int(self.SERVER_ADDRESS.rpartition(":")[2])

    @computed_field
    def storage_backend(self) -> StorageBackend:
        """Storage selected by configuration: database, then file, then memory."""
        if self.DATABASE_DSN:
            return StorageBackend.DATABASE
        if self.FILE_STORAGE_PATH:
            return StorageBackend.FILE
        return StorageBackend.MEMORY

    @classmethod
    def from_args(cls, argv: Optional[Sequence[str]] = None) -> "Settings":
        """Build settings from command-line flags plus the environment.

        Args:
            argv: Arguments without the program name; defaults to sys.argv[1:]

        Returns:
            Settings: Resolved settings, environment taking precedence over flags
        """
        parser = build_arg_parser()
        namespace = parser.parse_args(argv)
        overrides: Dict[str, Any] = {
            field: value
            for field, value in vars(namespace).items()
            if value is not None
        }
        if overrides:
            logger.debug(f"Settings overridden from command line: {sorted(overrides)}")
        return cls(**overrides)


def build_arg_parser() -> argparse.ArgumentParser:
    """Create the command-line parser for the service flags."""
    parser = argparse.ArgumentParser(
        prog="shorturl",
        description="Run the URL shortener HTTP service.",
    )
    parser.add_argument(
        "-a", dest=CLI_FLAGS["-a"], metavar="ADDRESS",
        help="address to listen on, host:port (env SERVER_ADDRESS)",
    )
    parser.add_argument(
        "-b", dest=CLI_FLAGS["-b"], metavar="URL",
        help="base URL of the returned short links (env BASE_URL)",
    )
    parser.add_argument(
        "-f", dest=CLI_FLAGS["-f"], metavar="PATH",
        help="JSON-lines file used to persist mappings (env FILE_STORAGE_PATH)",
    )
    parser.add_argument(
        "-d", dest=CLI_FLAGS["-d"], metavar="DSN",
        help="database DSN used to persist mappings (env DATABASE_DSN)",
    )
    return parser


# Create a singleton instance of the settings
settings = Settings()
