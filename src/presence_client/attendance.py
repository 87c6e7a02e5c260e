"""
src/presence_client/attendance.py
Check-in/check-out and profile endpoints, called with the session's bearer token.

The backend keeps one attendance record per user and day: ``POST /api/checkins``
opens it, ``POST /api/checkins/checkout`` closes it and
``GET /api/checkins/today`` returns it (404 or ``null`` when there is none yet).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .backend import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS, JsonApiClient, decode_json, server_message
from .errors import AttendanceError
from .logger import get_logger

if TYPE_CHECKING:
    from .config import ClientConfig

LOGGER = get_logger(__name__)

DEFAULT_LOCATION_TYPE = "home"
STANDARD_WORK_HOURS = 8

_STATUS_MESSAGES = {
    400: "Invalid check-in data. Review the information.",
    401: "Your session has expired. Sign in again.",
    403: "Access denied.",
    404: "Check-in not found.",
    409: "There is already a check-in for today.",
    500: "Server error. Try again later.",
}


def _parse_moment(day: str, value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    text = value.strip().replace("Z", "+00:00")
    if "T" not in text and " " not in text:
        text = f"{day}T{text}"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def format_duration(duration: timedelta) -> str:
    """Render a duration as ``HH:MM``."""
    minutes = max(int(duration.total_seconds() // 60), 0)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class CheckIn:
    id: int = 0
    user_id: int = 0
    date: str = ""
    check_in_time: str = ""
    check_out_time: Optional[str] = None
    location_type: str = ""
    location_detail: str = ""
    gps_lat: float = 0.0
    gps_long: float = 0.0
    notes: str = ""
    late: bool = False
    overtime: bool = False

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "CheckIn":
        return cls(
            id=int(data.get("id") or 0),
            user_id=int(data.get("user_id") or 0),
            date=str(data.get("date") or ""),
            check_in_time=str(data.get("check_in_time") or data.get("time") or ""),
            check_out_time=data.get("check_out_time") or data.get("checkout_time") or None,
            location_type=str(data.get("location_type") or ""),
            location_detail=str(data.get("location_detail") or ""),
            gps_lat=float(data.get("gps_lat") or 0.0),
            gps_long=float(data.get("gps_long") or 0.0),
            notes=str(data.get("notes") or ""),
            late=bool(data.get("late", False)),
            overtime=bool(data.get("overtime", False)),
        )

    @property
    def checked_out(self) -> bool:
        return bool(self.check_out_time)

    def started_at(self) -> Optional[datetime]:
        return _parse_moment(self.date, self.check_in_time)

    def worked(self, now: Optional[datetime] = None) -> Optional[timedelta]:
        """Time between check-in and check-out, or until ``now`` while still open."""
        start = self.started_at()
        if self.checked_out:
            end = _parse_moment(self.date, self.check_out_time)
        else:
            end = now
        if start is None or end is None:
            return None
        try:
            return end - start
        except TypeError:
            # one side carries a UTC offset and the other does not
            return None


@dataclass(frozen=True)
class UserProfile:
    id: int = 0
    name: str = ""
    surname: str = ""
    email: str = ""
    phone: str = ""
    role: str = ""
    timezone: str = ""
    checkin_start_time: str = ""
    email_confirmed: bool = False
    deactivated: bool = False
    pending_approval: bool = False

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(
            id=int(data.get("id") or 0),
            name=str(data.get("name") or ""),
            surname=str(data.get("surname") or ""),
            email=str(data.get("email") or ""),
            phone=str(data.get("phone") or ""),
            role=str(data.get("role") or ""),
            timezone=str(data.get("timezone") or ""),
            checkin_start_time=str(data.get("checkin_start_time") or ""),
            email_confirmed=bool(data.get("email_confirmed", False)),
            deactivated=bool(data.get("deactivated", False)),
            pending_approval=bool(data.get("pending_approval", False)),
        )

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.name, self.surname) if part)

    def start_time(self) -> Optional[time]:
        raw = self.checkin_start_time.strip()
        if not raw:
            return None
        try:
            return time.fromisoformat(raw)
        except ValueError:
            LOGGER.debug("Unrecognised check-in start time %r", raw)
            return None

    def is_late(self, now: datetime) -> bool:
        start = self.start_time()
        if start is None:
            return False
        return (now.hour, now.minute) > (start.hour, start.minute)


def _refused(status: int, body: str) -> AttendanceError:
    message = _STATUS_MESSAGES.get(status)
    if message is None:
        message = server_message(decode_json(body)) or f"Unexpected error processing the request ({status})"
    return AttendanceError(message, status=status)


class AttendanceClient(JsonApiClient):
    """Attendance API client; every call needs the session's bearer token."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        me_endpoint: str = "/api/users/me",
        checkins_endpoint: str = "/api/checkins",
        today_endpoint: str = "/api/checkins/today",
        checkout_endpoint: str = "/api/checkins/checkout",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(base_url, timeout_seconds=timeout_seconds)
        self.me_endpoint = me_endpoint
        self.checkins_endpoint = checkins_endpoint
        self.today_endpoint = today_endpoint
        self.checkout_endpoint = checkout_endpoint

    @classmethod
    def from_config(cls, config: ClientConfig) -> "AttendanceClient":
        return cls(
            config.api_url,
            me_endpoint=config.me_endpoint,
            checkins_endpoint=config.checkins_endpoint,
            today_endpoint=config.today_endpoint,
            checkout_endpoint=config.checkout_endpoint,
            timeout_seconds=config.timeout_seconds,
        )

    async def current_user(self, token: str) -> UserProfile:
        status, body = await self._request("GET", self.me_endpoint, token=token)
        if status != 200:
            raise _refused(status, body)
        payload = decode_json(body)
        if not isinstance(payload, dict):
            raise AttendanceError("Unexpected profile response", status=status)
        return UserProfile.from_payload(payload)

    async def today(self, token: str) -> Optional[CheckIn]:
        """Return today's record, or None when the user has not checked in."""
        status, body = await self._request("GET", self.today_endpoint, token=token)
        if status == 404:
            return None
        if status != 200:
            raise _refused(status, body)
        payload = decode_json(body)
        return CheckIn.from_payload(payload) if isinstance(payload, dict) else None

    async def history(self, token: str) -> List[CheckIn]:
        status, body = await self._request("GET", self.checkins_endpoint, token=token)
        if status != 200:
            raise _refused(status, body)
        payload = decode_json(body)
        if not isinstance(payload, list):
            raise AttendanceError("Unexpected check-in history response", status=status)
        return [CheckIn.from_payload(item) for item in payload if isinstance(item, dict)]

    async def check_in(
        self,
        token: str,
        *,
        user_id: int,
        location_type: str = DEFAULT_LOCATION_TYPE,
        location_detail: str = "",
        notes: str = "",
        gps_lat: float = 0.0,
        gps_long: float = 0.0,
        late_reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CheckIn:
        """Open today's attendance record.

        Args:
            token: Session bearer token.
            user_id: Id from ``current_user``; the backend requires it.
            location_type: Where the user works today (home, office, client...).
            late_reason: Sent only when non-empty.
            now: Check-in moment; defaults to the local time with its UTC offset.

        Returns:
            The record the backend created.
        """
        moment = now or datetime.now().astimezone()
        payload: Dict[str, Any] = {
            "date": moment.date().isoformat(),
            "time": moment.isoformat(timespec="seconds"),
            "location_type": location_type or DEFAULT_LOCATION_TYPE,
            "location_detail": location_detail,
            "notes": notes,
            "gps_lat": gps_lat,
            "gps_long": gps_long,
            "user_id": user_id,
        }
        if late_reason and late_reason.strip():
            payload["late_reason"] = late_reason.strip()

        status, body = await self._request(
            "POST", self.checkins_endpoint, json_body=payload, token=token, allow_redirects=False
        )
        if status == 307:
            # some deployments only route the collection with a trailing slash
            LOGGER.debug("Check-in redirected; retrying with trailing slash")
            status, body = await self._request(
                "POST",
                self.checkins_endpoint.rstrip("/") + "/",
                json_body=payload,
                token=token,
                allow_redirects=False,
            )
        if status not in (200, 201):
            raise _refused(status, body)
        created = decode_json(body)
        return CheckIn.from_payload(created if isinstance(created, dict) else payload)

    async def check_out(self, token: str, *, overtime: bool = False, status: str = "completed") -> CheckIn:
        code, body = await self._request(
            "POST",
            self.checkout_endpoint,
            json_body={"overtime": overtime, "status": status},
            token=token,
        )
        if code not in (200, 201):
            raise _refused(code, body)
        closed = decode_json(body)
        if not isinstance(closed, dict):
            raise AttendanceError("Unexpected check-out response", status=code)
        return CheckIn.from_payload(closed)


def is_overtime(worked: Optional[timedelta]) -> bool:
    return worked is not None and worked > timedelta(hours=STANDARD_WORK_HOURS)
