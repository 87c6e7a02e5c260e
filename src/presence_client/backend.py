"""HTTP client for the attendance backend's authentication endpoints."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol

import aiohttp

from .errors import BackendConnectionError, RegistrationError
from .logger import get_logger

if TYPE_CHECKING:
    from .config import ClientConfig

LOGGER = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_TIMEOUT_SECONDS = 30


class AuthBackend(Protocol):
    """Remote authentication endpoint used by the session manager."""

    async def login(self, email: str, password: str) -> Optional[str]:
        """Return a session token, or None when the credentials are rejected.

        Raises ``BackendConnectionError`` on transport failures.
        """

    async def validate_token(self, token: str) -> bool:
        """Return True when the backend still accepts ``token``."""

    async def logout(self, token: str) -> None:
        """Tell the backend the session is over (best effort)."""


class JsonApiClient:
    """Shared aiohttp plumbing: one short-lived session per request."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, *, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        allow_redirects: bool = True,
    ) -> tuple[int, str]:
        url = self._url(endpoint)
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        LOGGER.debug("%s %s", method, url)
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(
                    method,
                    url,
                    json=json_body,
                    headers=headers,
                    allow_redirects=allow_redirects,
                ) as response:
                    # Error pages are not always valid in their declared charset.
                    body = await response.text(errors="replace")
                    LOGGER.debug("%s %s -> %s", method, url, response.status)
                    return response.status, body
        except asyncio.TimeoutError as exc:
            raise BackendConnectionError(f"Timed out contacting {url}") from exc
        except aiohttp.ClientError as exc:
            raise BackendConnectionError(f"Cannot reach {url}: {exc}") from exc


class HttpAuthBackend(JsonApiClient):
    """``AuthBackend`` talking JSON over HTTP with aiohttp."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        login_endpoint: str = "/auth/login",
        validate_endpoint: str = "/auth/validate",
        logout_endpoint: str = "/auth/logout",
        register_endpoint: str = "/auth/register",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(base_url, timeout_seconds=timeout_seconds)
        self.login_endpoint = login_endpoint
        self.validate_endpoint = validate_endpoint
        self.logout_endpoint = logout_endpoint
        self.register_endpoint = register_endpoint

    @classmethod
    def from_config(cls, config: ClientConfig) -> "HttpAuthBackend":
        return cls(
            config.api_url,
            login_endpoint=config.login_endpoint,
            validate_endpoint=config.validate_endpoint,
            logout_endpoint=config.logout_endpoint,
            register_endpoint=config.register_endpoint,
            timeout_seconds=config.timeout_seconds,
        )

    async def login(self, email: str, password: str) -> Optional[str]:
        status, body = await self._request(
            "POST",
            self.login_endpoint,
            json_body={"email": email, "password": password},
        )
        payload = decode_json(body)
        if status != 200:
            LOGGER.info("Login rejected (%s): %s", status, server_message(payload) or "no message")
            return None
        token = payload.get("token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            LOGGER.warning("Login response carried no token")
            return None
        return token

    async def validate_token(self, token: str) -> bool:
        status, _ = await self._request("GET", self.validate_endpoint, token=token)
        return 200 <= status < 300

    async def logout(self, token: str) -> None:
        status, body = await self._request("POST", self.logout_endpoint, token=token)
        if not 200 <= status < 300:
            LOGGER.debug("Logout notification returned %s: %s", status, body[:200])

    async def register(
        self,
        *,
        email: str,
        name: str,
        surname: str,
        phone: str,
        password: str,
    ) -> None:
        """Create an account; raises ``RegistrationError`` when refused."""
        status, body = await self._request(
            "POST",
            self.register_endpoint,
            json_body={
                "email": email,
                "name": name,
                "surname": surname,
                "phone": phone,
                "password": password,
            },
        )
        if status in (200, 201):
            return
        message = server_message(decode_json(body)) or f"Registration failed ({status})"
        raise RegistrationError(message, status=status)


def decode_json(body: str) -> Any:
    try:
        return json.loads(body) if body else None
    except ValueError:
        return None


def server_message(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if message:
            return str(message)
    return None
