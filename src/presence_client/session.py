"""Authentication session manager.

``SessionManager`` is the single owner of the client's login state. It talks
to the auth backend, keeps the token in the local key-value store so a
restart does not sign the user out, and broadcasts every state transition
through a ``SessionPublisher``.

Every public coroutine converts failures into ``SessionState.error`` plus a
boolean result; none of them raise. Calls are expected to be issued one at a
time (the UI disables its controls while ``is_loading`` is set).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Optional, Tuple

from .backend import AuthBackend
from .biometrics import BiometricPrompt, BiometricResult
from .errors import AuthErrorKind, BackendError, StorageError
from .logger import get_logger
from .state import Listener, SessionPublisher, SessionState, SubscriptionHandle
from .storage import (
    AUTH_TOKEN_KEY,
    BIOMETRIC_ENABLED_KEY,
    CREDENTIAL_KEYS,
    SAVED_EMAIL_KEY,
    SAVED_PASSWORD_KEY,
    KeyValueStore,
)
from .tokens import decode_claims, is_expiring

LOGGER = get_logger(__name__)

DEFAULT_BIOMETRIC_REASON = "Confirm it's you to sign in"


class SessionManager:
    """Owns the authentication session and keeps disk and memory in sync."""

    def __init__(
        self,
        backend: AuthBackend,
        store: KeyValueStore,
        *,
        biometrics: Optional[BiometricPrompt] = None,
        publisher: Optional[SessionPublisher] = None,
    ) -> None:
        self._backend = backend
        self._store = store
        self._biometrics = biometrics
        self._publisher = publisher or SessionPublisher()
        self._state = SessionState()

    # ------------------------------------------------------------------ observation
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def publisher(self) -> SessionPublisher:
        return self._publisher

    def subscribe(self, listener: Listener) -> SubscriptionHandle:
        return self._publisher.subscribe(listener)

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        self._publisher.unsubscribe(handle)

    def _commit(self, **changes: Any) -> SessionState:
        self._state = replace(self._state, **changes)
        self._publisher.publish(self._state)
        return self._state

    # ------------------------------------------------------------------ storage helpers
    def _read_string(self, key: str) -> Optional[str]:
        try:
            return self._store.get_string(key)
        except StorageError as exc:
            LOGGER.warning("Could not read %s: %s", key, exc)
            return None

    def _forget(self, *keys: str) -> None:
        for key in keys:
            try:
                self._store.remove(key)
            except StorageError as exc:
                LOGGER.warning("Could not remove %s: %s", key, exc)

    def _saved_credentials(self) -> Tuple[Optional[str], Optional[str]]:
        return self._read_string(SAVED_EMAIL_KEY), self._read_string(SAVED_PASSWORD_KEY)

    def _save_credentials(self, email: str, password: str) -> None:
        try:
            self._store.set_string(SAVED_EMAIL_KEY, email)
            self._store.set_string(SAVED_PASSWORD_KEY, password)
            self._store.set_bool(BIOMETRIC_ENABLED_KEY, True)
        except StorageError as exc:
            LOGGER.warning("Biometric login not enabled, credentials could not be saved: %s", exc)
            self._forget(*CREDENTIAL_KEYS)
            return
        LOGGER.debug("Saved credentials for biometric login")

    # ------------------------------------------------------------------ lifecycle
    async def restore(self) -> SessionState:
        """Rebuild the session from the stored token at startup.

        A token that cannot be validated, for whatever reason, is discarded.
        Observers are notified once, and only if the outcome differs from the
        current state.
        """
        token = self._read_string(AUTH_TOKEN_KEY)
        authenticated = False
        if token:
            LOGGER.debug("Stored token found, validating")
            try:
                authenticated = bool(await self._backend.validate_token(token))
            except BackendError as exc:
                LOGGER.warning("Token validation failed: %s", exc)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Unexpected error while validating the stored token")
            if not authenticated:
                LOGGER.info("Stored session is no longer valid; signing out")
                self._forget(AUTH_TOKEN_KEY)
                token = None
        else:
            LOGGER.debug("No stored token")

        restored = replace(
            self._state,
            token=token,
            is_authenticated=authenticated,
            is_initialized=True,
        )
        if restored != self._state:
            self._state = restored
            self._publisher.publish(restored)
        return self._state

    async def login(self, email: str, password: str, save_biometrics: bool = False) -> bool:
        """Sign in with email and password.

        Args:
            email: Account email.
            password: Account password.
            save_biometrics: Also keep the credentials so that
                ``authenticate_with_biometrics`` can replay them later.

        Returns:
            True when the backend issued a token and it was stored.
        """
        self._commit(is_loading=True, error=None)
        try:
            error = await self._login(email, password, save_biometrics)
        finally:
            self._commit(is_loading=False)
        return error is None

    async def _login(self, email: str, password: str, save_biometrics: bool) -> Optional[AuthErrorKind]:
        LOGGER.debug("Signing in as %s", email)
        try:
            token = await self._backend.login(email, password)
        except BackendError as exc:
            LOGGER.warning("Login failed: %s", exc)
            return self._fail_login(AuthErrorKind.CONNECTION_ERROR)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Unexpected error during login")
            return self._fail_login(AuthErrorKind.CONNECTION_ERROR)

        if not token:
            return self._fail_login(AuthErrorKind.INVALID_CREDENTIALS)

        try:
            self._store.set_string(AUTH_TOKEN_KEY, token)
        except StorageError as exc:
            LOGGER.warning("Could not store the session token: %s", exc)
            return self._fail_login(AuthErrorKind.STORAGE_ERROR)

        self._commit(token=token, is_authenticated=True)
        if save_biometrics:
            self._save_credentials(email, password)
        LOGGER.info("Signed in as %s", email)
        return None

    def _fail_login(self, kind: AuthErrorKind) -> AuthErrorKind:
        if self._state.token is not None:
            self._forget(AUTH_TOKEN_KEY)
        self._commit(token=None, is_authenticated=False, error=kind)
        return kind

    async def logout(self, clear_biometric_credentials: bool = False) -> None:
        """Sign out locally; the backend is notified on a best-effort basis."""
        self._commit(is_loading=True, error=None)
        token = self._state.token
        try:
            if token:
                try:
                    await self._backend.logout(token)
                except Exception as exc:  # noqa: BLE001
                    LOGGER.debug("Backend logout failed (ignored): %s", exc)
        finally:
            self._forget(AUTH_TOKEN_KEY)
            if clear_biometric_credentials:
                self._forget(*CREDENTIAL_KEYS)
            self._commit(token=None, is_authenticated=False, is_loading=False)
        LOGGER.info("Signed out")

    async def authenticate_with_biometrics(self, reason: str = DEFAULT_BIOMETRIC_REASON) -> bool:
        """Replay saved credentials after the device owner confirms presence."""
        email, password = self._saved_credentials()
        if not email or not password:
            self._commit(error=AuthErrorKind.NO_SAVED_CREDENTIALS)
            return False

        prompt = self._biometrics
        if prompt is None or not await self._prompt_available(prompt):
            self._commit(error=AuthErrorKind.BIOMETRIC_UNAVAILABLE)
            return False

        try:
            result = await prompt.authenticate(reason)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Biometric prompt failed: %s", exc)
            result = BiometricResult.FAILED

        if result == BiometricResult.CANCELLED:
            self._commit(error=AuthErrorKind.BIOMETRIC_CANCELLED)
            return False
        if result != BiometricResult.SUCCESS:
            self._commit(error=AuthErrorKind.BIOMETRIC_FAILED)
            return False

        return await self.login(email, password)

    async def _prompt_available(self, prompt: BiometricPrompt) -> bool:
        try:
            return bool(await prompt.is_available())
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Could not query biometric capability: %s", exc)
            return False

    async def is_token_valid(self) -> bool:
        token = self._state.token
        if not token:
            return False
        try:
            return bool(await self._backend.validate_token(token))
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Token validation failed: %s", exc)
            return False

    async def refresh(self) -> bool:
        """Re-validate the held token and sign out if the backend revoked it.

        Returns True while the session is still authenticated.
        """
        if not self._state.token:
            return False
        self._commit(is_loading=True, error=None)
        if await self.is_token_valid():
            self._commit(is_loading=False)
            return True
        LOGGER.info("Session was revoked by the server")
        await self.logout()
        return False

    async def update_token(self, new_token: str) -> bool:
        """Adopt a token issued by the backend outside of ``login``."""
        if not new_token:
            return False
        try:
            self._store.set_string(AUTH_TOKEN_KEY, new_token)
        except StorageError as exc:
            LOGGER.warning("Could not store the refreshed token: %s", exc)
            self._commit(error=AuthErrorKind.STORAGE_ERROR)
            return False
        self._commit(token=new_token, is_authenticated=True, error=None)
        LOGGER.debug("Session token updated")
        return True

    async def clear_state(self) -> None:
        """Forget everything: token, saved credentials and all flags."""
        self._forget(AUTH_TOKEN_KEY, *CREDENTIAL_KEYS)
        self._state = SessionState()
        self._publisher.publish(self._state)

    # ------------------------------------------------------------------ queries
    def has_saved_credentials(self) -> bool:
        email, password = self._saved_credentials()
        return bool(email and password)

    def is_biometric_login_enabled(self) -> bool:
        try:
            enabled = self._store.get_bool(BIOMETRIC_ENABLED_KEY)
        except StorageError:
            return False
        return bool(enabled) and self.has_saved_credentials()

    def user_info(self) -> Optional[Dict[str, Any]]:
        token = self._state.token
        if token is None:
            return None
        info: Dict[str, Any] = {
            "has_token": True,
            "is_authenticated": self._state.is_authenticated,
            "token_length": len(token),
        }
        claims = decode_claims(token)
        if claims:
            for key in ("sub", "email", "name", "role", "exp"):
                if key in claims:
                    info[key] = claims[key]
        return info

    def needs_auth_refresh(self, leeway_seconds: float = 60) -> bool:
        token = self._state.token
        if token is None:
            return True
        return is_expiring(token, leeway_seconds=leeway_seconds)
