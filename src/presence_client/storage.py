"""Local key-value storage for the session token and saved credentials."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from .errors import StorageError
from .logger import get_logger

AUTH_TOKEN_KEY = "auth_token"
SAVED_EMAIL_KEY = "saved_email"
SAVED_PASSWORD_KEY = "saved_password"
BIOMETRIC_ENABLED_KEY = "biometric_login_enabled"

CREDENTIAL_KEYS = (SAVED_EMAIL_KEY, SAVED_PASSWORD_KEY, BIOMETRIC_ENABLED_KEY)

Value = Union[str, bool]

LOGGER = get_logger(__name__)


class KeyValueStore(Protocol):
    """String/boolean storage that survives process restarts.

    Implementations raise ``StorageError`` when the backing medium cannot be
    read or written.
    """

    def get_string(self, key: str) -> Optional[str]:
        """Return the string stored under ``key`` or None."""

    def set_string(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    def get_bool(self, key: str) -> Optional[bool]:
        """Return the boolean stored under ``key`` or None."""

    def set_bool(self, key: str, value: bool) -> None:
        """Store ``value`` under ``key``."""

    def remove(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""


class MemoryStore:
    """Process-local store, handy for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, Value]] = None) -> None:
        self._data: Dict[str, Value] = dict(initial or {})

    def get_string(self, key: str) -> Optional[str]:
        value = self._data.get(key)
        return value if isinstance(value, str) else None

    def set_string(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def get_bool(self, key: str) -> Optional[bool]:
        value = self._data.get(key)
        return value if isinstance(value, bool) else None

    def set_bool(self, key: str, value: bool) -> None:
        self._data[key] = bool(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> Dict[str, Value]:
        return dict(self._data)


class JsonFileStore:
    """Persist keys as a single JSON object on disk.

    The file is re-read on every access so that several processes (or a
    user editing the file) see each other's writes. A corrupted file reads
    as empty and is replaced on the next write.
    """

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self.path = Path(path)

    def _load_all(self) -> Dict[str, Any]:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            LOGGER.warning("Ignoring corrupted state file %s: %s", self.path, exc)
            return {}
        except OSError as exc:
            raise StorageError(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            LOGGER.warning("Ignoring state file %s: expected a JSON object", self.path)
            return {}
        return payload

    def _save_all(self, data: Dict[str, Any]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageError(f"Cannot write {self.path}: {exc}") from exc

    def get_string(self, key: str) -> Optional[str]:
        value = self._load_all().get(key)
        return value if isinstance(value, str) else None

    def set_string(self, key: str, value: str) -> None:
        data = self._load_all()
        data[key] = str(value)
        self._save_all(data)

    def get_bool(self, key: str) -> Optional[bool]:
        value = self._load_all().get(key)
        return value if isinstance(value, bool) else None

    def set_bool(self, key: str, value: bool) -> None:
        data = self._load_all()
        data[key] = bool(value)
        self._save_all(data)

    def remove(self, key: str) -> None:
        data = self._load_all()
        if key in data:
            del data[key]
            self._save_all(data)
