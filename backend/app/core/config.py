"""Marketplace Admin Configuration."""

import base64
import binascii
from functools import lru_cache
from typing import Literal

from argon2 import extract_parameters
from argon2.exceptions import InvalidHashError
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Shorter HMAC keys are accepted but flagged at startup
_MIN_SECRET_LENGTH = 32


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1]
    return value


def _is_argon2_hash(value: str) -> bool:
    if len(value) < 40:
        return False
    try:
        extract_parameters(value)
    except InvalidHashError:
        return False
    return True


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Marketplace Admin"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Admin credentials
    admin_username: str = ""
    admin_password_hash: str = ""
    admin_password_hash_b64: str = Field(
        default="",
        description="Base64-encoded password hash, avoids $ expansion in env files",
    )

    # Admin session
    admin_session_secret: str = ""
    admin_session_ttl_seconds: int = Field(default=8 * 60 * 60, ge=1)
    admin_session_cookie_name: str = "admin_session"
    admin_login_path: str = "/admin/login"
    admin_protected_prefixes: str = "/admin"
    admin_public_paths: str = "/admin/login"
    session_sweep_interval_seconds: int = Field(default=300, ge=1)

    # Login throttling
    login_rate_limit_attempts: int = Field(default=5, ge=1)
    login_rate_limit_window_seconds: int = Field(default=15 * 60, ge=1)

    # CORS
    cors_origins: str = "http://localhost:3000"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_VALID_LOG_LEVELS)}")
        return level

    @field_validator("admin_login_path")
    @classmethod
    def validate_login_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("admin_login_path must start with '/'")
        return v

    @field_validator("admin_protected_prefixes", "admin_public_paths")
    @classmethod
    def validate_path_list(cls, v: str) -> str:
        for path in _split_csv(v):
            if not path.startswith("/"):
                raise ValueError(f"Path '{path}' must start with '/'")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cookie_secure(self) -> bool:
        """Session cookies carry the Secure attribute in production only."""
        return self.is_production

    @property
    def protected_prefixes_list(self) -> list[str]:
        return [p.rstrip("/") or "/" for p in _split_csv(self.admin_protected_prefixes)]

    @property
    def public_paths_list(self) -> list[str]:
        return [p.rstrip("/") or "/" for p in _split_csv(self.admin_public_paths)]

    @property
    def cors_origins_list(self) -> list[str]:
        return _split_csv(self.cors_origins)

    @property
    def effective_password_hash(self) -> str:
        """Resolve the admin password hash.

        ADMIN_PASSWORD_HASH wins when it holds a parseable Argon2 hash.
        Otherwise ADMIN_PASSWORD_HASH_B64 is decoded: shells and compose files
        expand the ``$`` segments of a plain hash, leaving a truncated value.
        Wrapping single quotes left over from env files are stripped.
        """
        password_hash = _strip_quotes(self.admin_password_hash.strip())
        if self.admin_password_hash_b64 and not _is_argon2_hash(password_hash):
            try:
                decoded = (
                    base64.b64decode(self.admin_password_hash_b64.strip(), validate=True)
                    .decode("utf-8")
                    .strip()
                )
            except (binascii.Error, UnicodeDecodeError):
                decoded = ""
            if decoded:
                password_hash = _strip_quotes(decoded)
        return password_hash

    def check_security_configuration(self) -> list[str]:
        """Return warnings about insecure or incomplete configuration."""
        warnings: list[str] = []

        if not self.admin_session_secret:
            warnings.append(
                "ADMIN_SESSION_SECRET is not set - every admin session will be rejected. "
                'Generate one with: python -c "import secrets; print(secrets.token_hex(32))"'
            )
        elif len(self.admin_session_secret) < _MIN_SECRET_LENGTH:
            warnings.append(
                f"ADMIN_SESSION_SECRET is shorter than {_MIN_SECRET_LENGTH} characters"
            )

        if not self.admin_username or not self.effective_password_hash:
            warnings.append(
                "ADMIN_USERNAME or ADMIN_PASSWORD_HASH is not set - admin login is disabled"
            )

        if self.is_production and self.debug:
            warnings.append("DEBUG is enabled in production")

        if self.is_production and "*" in self.cors_origins_list:
            warnings.append("CORS_ORIGINS allows any origin in production")

        return warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
