"""Configuration management for bookswap.

Loads configuration from environment variables and provides defaults.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> tuple[int, Optional[str]]:
    """Positive integer from the environment, plus the raw text if it was unusable."""
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default, None
    try:
        number = int(value)
    except ValueError:
        return default, value
    if number <= 0:
        return default, value
    return number, None


@dataclass
class Config:
    """Application configuration."""

    # Firebase project
    project_id: Optional[str]
    credentials_path: Optional[Path]
    storage_bucket: Optional[str]

    # Auth REST API
    api_key: Optional[str]
    auth_timeout: int  # seconds
    require_verified_email: bool

    # CLI
    user_id: Optional[str]
    log_level: str

    # Settings that could not be parsed, by variable name
    invalid: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        project_id = os.environ.get("BOOKSWAP_PROJECT_ID") or os.environ.get(
            "GOOGLE_CLOUD_PROJECT"
        )

        credentials = os.environ.get("BOOKSWAP_CREDENTIALS") or os.environ.get(
            "GOOGLE_APPLICATION_CREDENTIALS"
        )
        credentials_path = Path(credentials).expanduser() if credentials else None

        storage_bucket = os.environ.get("BOOKSWAP_STORAGE_BUCKET")
        if not storage_bucket and project_id:
            storage_bucket = f"{project_id}.appspot.com"

        invalid = {}
        auth_timeout, raw_timeout = _env_int("BOOKSWAP_AUTH_TIMEOUT", 10)
        if raw_timeout is not None:
            invalid["BOOKSWAP_AUTH_TIMEOUT"] = raw_timeout

        return cls(
            project_id=project_id,
            credentials_path=credentials_path,
            storage_bucket=storage_bucket,
            api_key=os.environ.get("BOOKSWAP_API_KEY"),
            auth_timeout=auth_timeout,
            require_verified_email=_env_bool("BOOKSWAP_REQUIRE_VERIFIED_EMAIL", True),
            user_id=os.environ.get("BOOKSWAP_USER_ID"),
            log_level=os.environ.get("BOOKSWAP_LOG_LEVEL", "WARNING").upper(),
            invalid=invalid,
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if not self.project_id:
            errors.append("No Firebase project configured (set BOOKSWAP_PROJECT_ID)")

        if self.credentials_path and not self.credentials_path.exists():
            errors.append(f"Credentials file not found: {self.credentials_path}")

        if self.log_level not in logging.getLevelNamesMapping():
            errors.append(f"Unknown log level: {self.log_level}")

        for name, value in self.invalid.items():
            errors.append(f"{name} must be a positive whole number, got {value!r}")

        return errors

    def has_auth_config(self) -> bool:
        """Check if the Auth REST API key is present."""
        return bool(self.api_key)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
