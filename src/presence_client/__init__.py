"""Authentication session client for the Presence attendance backend."""

from .attendance import AttendanceClient, CheckIn, UserProfile
from .backend import AuthBackend, HttpAuthBackend
from .biometrics import BiometricPrompt, BiometricResult, TotpPrompt
from .errors import (
    AttendanceError,
    AuthErrorKind,
    BackendConnectionError,
    BackendError,
    PresenceClientError,
    RegistrationError,
    StorageError,
)
from .guards import RouteDecision, guest_route, protected_route
from .session import SessionManager
from .state import SessionPublisher, SessionState, SubscriptionHandle
from .storage import JsonFileStore, KeyValueStore, MemoryStore

__version__ = "0.1.0"

__all__ = [
    "AttendanceClient",
    "AttendanceError",
    "AuthBackend",
    "AuthErrorKind",
    "BackendConnectionError",
    "BackendError",
    "BiometricPrompt",
    "BiometricResult",
    "CheckIn",
    "HttpAuthBackend",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "PresenceClientError",
    "RegistrationError",
    "RouteDecision",
    "SessionManager",
    "SessionPublisher",
    "SessionState",
    "StorageError",
    "SubscriptionHandle",
    "TotpPrompt",
    "UserProfile",
    "guest_route",
    "protected_route",
]
