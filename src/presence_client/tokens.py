"""Best-effort introspection of bearer tokens.

Claims are decoded without verifying the signature; they are only used to
decide when to re-validate, never to grant access.
"""

from __future__ import annotations

import base64
import binascii
import json
import time
from typing import Any, Dict, Optional


def decode_claims(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the payload of a JWT, or None if ``token`` is not one."""
    if not token or token.count(".") != 2:
        return None
    payload = token.split(".")[1]
    padded = payload + "=" * (-len(payload) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        claims = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError):
        return None
    return claims if isinstance(claims, dict) else None


def expires_at(token: Optional[str]) -> Optional[float]:
    claims = decode_claims(token)
    if not claims:
        return None
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return float(exp)


def is_expiring(token: Optional[str], *, leeway_seconds: float = 60, now: Optional[float] = None) -> bool:
    """True when ``token`` carries an ``exp`` claim within ``leeway_seconds``."""
    exp = expires_at(token)
    if exp is None:
        return False
    current = time.time() if now is None else now
    return exp - current <= leeway_seconds
