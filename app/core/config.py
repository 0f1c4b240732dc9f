from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getint(name: str, default: str) -> int:
    raw = _getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def _load_jwt_public_key() -> str | None:
    """PEM from JWT_PUBLIC_KEY (literal \\n allowed) or the file at JWT_PUBLIC_KEY_FILE."""
    inline = _getenv("JWT_PUBLIC_KEY", "")
    if inline:
        return inline.replace("\\n", "\n")
    path = _getenv("JWT_PUBLIC_KEY_FILE", "")
    if not path:
        return None
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except OSError as exc:
        raise ValueError(f"JWT_PUBLIC_KEY_FILE is not readable ({exc})") from None


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    role_cache_ttl_seconds: int = 300
    stripe_webhook_secret: str | None = None
    jwt_public_key: str | None = None  # PEM of the token issuer's ES256 key

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getint("PORT", "8000")

    jwt_public_key = _load_jwt_public_key()
    if jwt_public_key is None and app_env_raw == "prod":
        raise ValueError("JWT_PUBLIC_KEY or JWT_PUBLIC_KEY_FILE is required when APP_ENV=prod")

    role_cache_ttl = _getint("ROLE_CACHE_TTL_SECONDS", "300")
    if role_cache_ttl <= 0:
        raise ValueError(
            f"ROLE_CACHE_TTL_SECONDS must be positive (got {role_cache_ttl})"
        )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv("LOG_JSON", "false").lower() in _TRUTHY,
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        role_cache_ttl_seconds=role_cache_ttl,
        stripe_webhook_secret=_getenv("STRIPE_WEBHOOK_SECRET", "") or None,
        jwt_public_key=jwt_public_key,
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
