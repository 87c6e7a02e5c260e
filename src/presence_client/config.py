"""Environment-driven configuration for presence-client."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .backend import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS
from .logger import get_logger

LOGGER = get_logger(__name__)

DEFAULT_ENV_FILE = ".env"
DEFAULT_STATE_FILE = ".presence_state.json"


@dataclass(frozen=True)
class ClientConfig:
    api_url: str = DEFAULT_BASE_URL
    login_endpoint: str = "/auth/login"
    validate_endpoint: str = "/auth/validate"
    logout_endpoint: str = "/auth/logout"
    register_endpoint: str = "/auth/register"
    me_endpoint: str = "/api/users/me"
    checkins_endpoint: str = "/api/checkins"
    today_endpoint: str = "/api/checkins/today"
    checkout_endpoint: str = "/api/checkins/checkout"
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    state_file: str = DEFAULT_STATE_FILE
    totp_secret: Optional[str] = None
    default_email: Optional[str] = None


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        LOGGER.warning("%s=%r is not an integer; using %s", name, raw, default)
        return default
    if value <= 0:
        LOGGER.warning("%s must be positive; using %s", name, default)
        return default
    return value


def _str_env(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def load_config(env_file: Optional[str] = None) -> ClientConfig:
    """Load ``.env`` (without overriding the real environment) and build the config."""
    path = env_file or os.getenv("ENV_FILE", DEFAULT_ENV_FILE)
    if os.path.exists(path):
        load_dotenv(path, override=False)
        LOGGER.debug("Loaded environment from %s", path)

    return ClientConfig(
        api_url=_str_env("PRESENCE_API_URL", DEFAULT_BASE_URL),
        login_endpoint=_str_env("PRESENCE_LOGIN_ENDPOINT", "/auth/login"),
        validate_endpoint=_str_env("PRESENCE_VALIDATE_ENDPOINT", "/auth/validate"),
        logout_endpoint=_str_env("PRESENCE_LOGOUT_ENDPOINT", "/auth/logout"),
        register_endpoint=_str_env("PRESENCE_REGISTER_ENDPOINT", "/auth/register"),
        me_endpoint=_str_env("PRESENCE_ME_ENDPOINT", "/api/users/me"),
        checkins_endpoint=_str_env("PRESENCE_CHECKINS_ENDPOINT", "/api/checkins"),
        today_endpoint=_str_env("PRESENCE_TODAY_ENDPOINT", "/api/checkins/today"),
        checkout_endpoint=_str_env("PRESENCE_CHECKOUT_ENDPOINT", "/api/checkins/checkout"),
        timeout_seconds=_int_env("PRESENCE_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        state_file=_str_env("PRESENCE_STATE_FILE", DEFAULT_STATE_FILE),
        totp_secret=_str_env("PRESENCE_TOTP_SECRET"),
        default_email=_str_env("PRESENCE_EMAIL"),
    )
