"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Folio Admin happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead,
or receive a Settings instance from create_app().

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. admin_password -> ADMIN_PASSWORD). Type coercion is built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Implements the DEBUG-conditional SECRET_KEY logic: dev mode
      generates a key with a warning, production mode refuses to start without one.

Security notes:
  [M6] SECRET_KEY shorter than 32 chars is rejected outright. Session tokens
       are HS256-signed with it -- a short key weakens the signature.

  [M7] In production mode (DEBUG not set or false), a missing SECRET_KEY is a
       hard startup failure. A random key in production would log the admin
       out on every restart.

  ADMIN_PASSWORD is NOT validated here. A missing password must
  not stop the public site from starting; the authenticator reports it as
  MisconfiguredSecret on the first login attempt instead.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, or content/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("folio.config")

_DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. Tests usually build one directly:
    Settings(debug=True, admin_password="...", data_dir=tmp_path).
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
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Admin surface
    # ------------------------------------------------------------------

    # Shared admin secret. Empty = not configured (login answers 401, logs error).
    admin_password: str = ""
    # Turns the whole /admin and /api/admin surface off for a deployment.
    admin_enabled: bool = True

    # ------------------------------------------------------------------
    # Session cookie
    # ------------------------------------------------------------------

    # Forces the Secure flag in debug mode too. Production always sets it.
    secure_cookies: bool = False
    session_expire_seconds: int = 3600

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_max_attempts: int = 5
    login_window_seconds: int = 15 * 60
    rate_limit_max_keys: int = 10_000
    # slowapi default limit applied to every route by SlowAPIMiddleware.
    api_rate_limit: str = "100/minute"
    # Key limits on cf-connecting-ip / X-Forwarded-For / X-Real-IP. Only safe
    # behind a proxy that overwrites those headers; otherwise clients pick
    # their own key.
    trust_proxy_headers: bool = False

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    data_dir: Path = _DEFAULT_DATA_DIR
    # Default: <data_dir>/blog and <data_dir>/uploads/blog (resolved below).
    blog_dir: Optional[Path] = None
    uploads_dir: Optional[Path] = None

    # ------------------------------------------------------------------
    # Cache revalidation (optional -- empty URL means no cache layer)
    # ------------------------------------------------------------------

    revalidate_url: str = ""
    revalidate_token: str = ""
    revalidate_timeout: float = 5.0

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost", "testserver"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def cookie_secure(self) -> bool:
        """Secure cookie flag: always on in production, opt-in in debug."""
        return self.secure_cookies or not self.debug

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce SECRET_KEY policy [M7].

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters [M6].
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated SECRET_KEY. " "Sessions will not persist across restarts."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    @model_validator(mode="after")
    def resolve_content_dirs(self) -> "Settings":
        """Derive blog_dir and uploads_dir from data_dir when not set explicitly."""
        if self.blog_dir is None:
            self.blog_dir = self.data_dir / "blog"
        if self.uploads_dir is None:
            self.uploads_dir = self.data_dir / "uploads" / "blog"
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    create_app() falls back to this when it is not handed an explicit Settings.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
