"""Environment variable loading and validation."""

import os
from typing import Optional

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/jobnotify.db"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EnvironmentConfig:
    """Deployment-specific settings taken from the process environment."""

    def __init__(
        self,
        backend_host: str,
        frontend_host: str,
        database_url: Optional[str] = None,
        log_level: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        self.backend_host = backend_host.rstrip("/")
        self.frontend_host = frontend_host.rstrip("/")
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.log_level = log_level
        self.environment = environment or "local"


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Required:
    - BACKEND_HOST: base URL serving view artifacts
    - FRONTEND_HOST: URL of the subscription settings page

    Optional:
    - DATABASE_URL: SQLAlchemy URL (default: sqlite:///./data/jobnotify.db)
    - LOG_LEVEL: overrides the config file log level
    - ENVIRONMENT: label stamped on log records (default: local)

    Raises:
        ConfigurationError: If required variables are missing or invalid
    """
    errors = []

    backend_host = os.getenv("BACKEND_HOST", "").strip()
    frontend_host = os.getenv("FRONTEND_HOST", "").strip()
    log_level = os.getenv("LOG_LEVEL")

    for name, value in (("BACKEND_HOST", backend_host), ("FRONTEND_HOST", frontend_host)):
        if not value:
            errors.append(f"Missing required environment variable: {name}")
        elif not value.startswith(("http://", "https://")):
            errors.append(f"Invalid {name}: '{value}'. Must start with http:// or https://")

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your hosts",
                "Ensure all required environment variables are set",
            ],
        )

    return EnvironmentConfig(
        backend_host=backend_host,
        frontend_host=frontend_host,
        database_url=os.getenv("DATABASE_URL"),
        log_level=log_level.upper() if log_level else None,
        environment=os.getenv("ENVIRONMENT"),
    )
