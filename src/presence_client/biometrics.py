"""Re-authentication prompts used to unlock saved credentials.

On a phone this is the fingerprint/face dialog. The console client has no
such hardware, so it asks for a one-time code from the authenticator app
that shares ``PRESENCE_TOTP_SECRET`` with this device.
"""

from __future__ import annotations

import binascii
from enum import Enum
from typing import Callable, Optional, Protocol

import pyotp

from .logger import get_logger

LOGGER = get_logger(__name__)


class BiometricResult(str, Enum):
    SUCCESS = "success"
    CANCELLED = "cancelled"
    FAILED = "failed"


class BiometricPrompt(Protocol):
    """Platform capability that confirms the device owner is present."""

    async def is_available(self) -> bool:
        """Return True when the prompt can be shown on this device."""

    async def authenticate(self, reason: str) -> BiometricResult:
        """Show the prompt and report how it ended."""


class TotpPrompt:
    """``BiometricPrompt`` backed by a time-based one-time password.

    The code is read on the event loop thread: the prompt blocks the loop while
    it waits, which keeps Ctrl-C deliverable as a cancel.
    """

    def __init__(
        self,
        secret: Optional[str],
        read_code: Callable[[str], str] = input,
        *,
        valid_window: int = 1,
    ) -> None:
        self._secret = (secret or "").strip().replace(" ", "").upper()
        self._read_code = read_code
        self._valid_window = valid_window

    async def is_available(self) -> bool:
        if not self._secret:
            return False
        try:
            pyotp.TOTP(self._secret).now()
        except (binascii.Error, ValueError):
            LOGGER.warning("PRESENCE_TOTP_SECRET is not valid base32; biometric login disabled")
            return False
        return True

    async def authenticate(self, reason: str) -> BiometricResult:
        try:
            code = self._read_code(f"{reason} – one-time code: ")
        except (EOFError, KeyboardInterrupt):
            return BiometricResult.CANCELLED
        code = (code or "").strip().replace(" ", "")
        if not code:
            return BiometricResult.CANCELLED
        try:
            verified = pyotp.TOTP(self._secret).verify(code, valid_window=self._valid_window)
        except (binascii.Error, ValueError) as exc:
            LOGGER.warning("One-time code check failed: %s", exc)
            return BiometricResult.FAILED
        return BiometricResult.SUCCESS if verified else BiometricResult.FAILED
