"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for videohub happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. access_token_secret -> ACCESS_TOKEN_SECRET).

  @model_validator(mode="after"): Cross-field validation of the two token
      secrets after all fields are resolved from the environment.

  StorageConfig: the object-storage credentials are copied into a frozen
      dataclass once at startup and handed to the uploader's constructor.
      Nothing configures the storage client globally.

Security notes:
  [M6] Token secrets shorter than 32 chars are rejected outright.
  [M7] In production mode (DEBUG not set or false), a missing token secret is
       a hard startup failure.
  [M8] Access and refresh secrets must differ, otherwise a refresh token
       would verify as an access token and vice versa.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or media/.
"""

import logging
import secrets
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("videohub.config")

_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    database_url: str = f"sqlite:///{Path(__file__).resolve().parent.parent / 'videohub.db'}"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev secret or raises, so callers never see "".
    access_token_secret: str = ""
    access_token_expire_minutes: int = 15
    refresh_token_secret: str = ""
    refresh_token_expire_days: int = 10

    # Browsers drop secure cookies on plain http. Leave on outside local dev.
    secure_cookies: bool = True

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    upload_temp_dir: Path = Path("./public/temp")
    max_upload_bytes: int = 5 * 1024 * 1024
    upload_timeout_seconds: int = 30

    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_token_secrets(self) -> "Settings":
        """Enforce the token secret policy [M6][M7][M8].

        Dev mode (DEBUG=true): auto-generate any missing secret with a warning.
            Issued tokens will not survive a restart.

        Production mode: refuse to start if either secret is missing.

        Both modes: reject short secrets and identical secrets.
        """
        for name in ("access_token_secret", "refresh_token_secret"):
            value = getattr(self, name)
            if not value:
                if self.debug:
                    setattr(self, name, secrets.token_hex(32))
                    logger.warning(
                        "Using auto-generated %s. Sessions will not persist across restarts.",
                        name.upper(),
                    )
                else:
                    raise ValueError(
                        f"{name.upper()} is required in production mode. "
                        "Set it in your environment or .env file. "
                        "To run in development mode, set DEBUG=true."
                    )
            if len(getattr(self, name)) < _MIN_SECRET_LENGTH:
                raise ValueError(f"{name.upper()} must be at least {_MIN_SECRET_LENGTH} characters.")
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be different.")
        return self


@dataclass(frozen=True)
class StorageConfig:
    """Credentials for the object-storage provider, built once at startup."""

    cloud_name: str
    api_key: str
    api_secret: str
    timeout_seconds: int = 30

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageConfig":
        return cls(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            timeout_seconds=settings.upload_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
