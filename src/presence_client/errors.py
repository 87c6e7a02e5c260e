"""Error taxonomy and exception types for presence-client."""

from __future__ import annotations

from enum import Enum


class AuthErrorKind(str, Enum):
    """User-facing failure kinds surfaced through ``SessionState.error``."""

    INVALID_CREDENTIALS = "invalid_credentials"
    CONNECTION_ERROR = "connection_error"
    BIOMETRIC_UNAVAILABLE = "biometric_unavailable"
    NO_SAVED_CREDENTIALS = "no_saved_credentials"
    BIOMETRIC_CANCELLED = "biometric_cancelled"
    BIOMETRIC_FAILED = "biometric_failed"
    STORAGE_ERROR = "storage_error"
    VALIDATION_ERROR = "validation_error"

    @property
    def message(self) -> str:
        return _MESSAGES[self]

    def __str__(self) -> str:
        return self.value


_MESSAGES = {
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid credentials. Check your email and password.",
    AuthErrorKind.CONNECTION_ERROR: "Connection error. Check your internet connection.",
    AuthErrorKind.BIOMETRIC_UNAVAILABLE: "Biometric authentication is not available on this device.",
    AuthErrorKind.NO_SAVED_CREDENTIALS: "No saved credentials. Sign in with your password first.",
    AuthErrorKind.BIOMETRIC_CANCELLED: "Biometric authentication was cancelled.",
    AuthErrorKind.BIOMETRIC_FAILED: "Biometric authentication failed.",
    AuthErrorKind.STORAGE_ERROR: "Could not save your session on this device.",
    AuthErrorKind.VALIDATION_ERROR: "Some fields are invalid.",
}


class PresenceClientError(Exception):
    """Base exception for presence-client."""


class BackendError(PresenceClientError):
    """Raised when the auth backend cannot complete a request."""


class BackendConnectionError(BackendError):
    """Raised on transport failures: refused connections, DNS, timeouts."""


class RegistrationError(BackendError):
    """Raised when the backend rejects a registration."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class AttendanceError(BackendError):
    """Raised when a check-in, check-out or profile request is refused."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status

    @property
    def session_expired(self) -> bool:
        return self.status == 401


class StorageError(PresenceClientError):
    """Raised when the local key-value store cannot be read or written."""
