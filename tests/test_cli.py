import argparse
import asyncio
import io
import json

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from presence_client import cli
from presence_client.attendance import AttendanceClient
from presence_client.backend import HttpAuthBackend
from presence_client.config import ClientConfig
from presence_client.console import PresenceConsole
from presence_client.session import SessionManager
from presence_client.storage import AUTH_TOKEN_KEY, SAVED_EMAIL_KEY, MemoryStore

ENV_KEYS = ["PRESENCE_API_URL", "PRESENCE_STATE_FILE", "PRESENCE_TOTP_SECRET", "PRESENCE_EMAIL"]


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    state_file = tmp_path / "state.json"
    env_file = tmp_path / ".env"
    env_file.write_text(
        f"PRESENCE_STATE_FILE={state_file}\nPRESENCE_API_URL=http://127.0.0.1:9\n",
        encoding="utf-8",
    )
    return env_file, state_file


def test_status_signed_out(workspace, capsys):
    env_file, _ = workspace

    code = cli.main(["--env-file", str(env_file), "status"])

    assert code == 1
    assert "Signed out" in capsys.readouterr().out


def test_reset_removes_local_session(workspace):
    env_file, state_file = workspace
    state_file.write_text(json.dumps({SAVED_EMAIL_KEY: "ana@example.com"}), encoding="utf-8")

    code = cli.main(["--env-file", str(env_file), "reset", "--yes"])

    assert code == 0
    assert json.loads(state_file.read_text(encoding="utf-8")) == {}


def test_stored_token_is_dropped_when_backend_unreachable(workspace):
    env_file, state_file = workspace
    state_file.write_text(json.dumps({AUTH_TOKEN_KEY: "tok-1"}), encoding="utf-8")

    code = cli.main(["--env-file", str(env_file), "check"])

    assert code == 1
    assert AUTH_TOKEN_KEY not in json.loads(state_file.read_text(encoding="utf-8"))


def test_login_rejects_invalid_form_before_network(workspace, monkeypatch):
    env_file, state_file = workspace
    monkeypatch.setattr("getpass.getpass", lambda prompt="": "123")

    code = cli.main(["--env-file", str(env_file), "login", "--email", "not-an-email"])

    assert code == 1
    assert not state_file.exists()


def test_biometric_without_saved_credentials(workspace):
    env_file, _ = workspace

    assert cli.main(["--env-file", str(env_file), "biometric"]) == 1


def test_configure_writes_env_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    env_file = tmp_path / "custom.env"

    code = cli.main(["--env-file", str(env_file), "configure", "--api-url", "http://10.0.2.2:8080"])

    assert code == 0
    assert 'PRESENCE_API_URL="http://10.0.2.2:8080"' in env_file.read_text(encoding="utf-8")


def test_configure_without_options_fails(tmp_path):
    assert cli.main(["--env-file", str(tmp_path / ".env"), "configure"]) == 1


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


class _AcceptingBackend:
    def __init__(self):
        self.logged_out = []

    async def login(self, email, password):
        return None

    async def validate_token(self, token):
        return True

    async def logout(self, token):
        self.logged_out.append(token)


def _attendance_app(seen, *, today):
    async def me(request):
        if request.headers.get("Authorization") != "Bearer tok-1":
            return web.json_response({"message": "expired"}, status=401)
        return web.json_response({"id": 7, "name": "Ana", "surname": "Lopez", "checkin_start_time": "09:00"})

    async def today_handler(request):
        if today is None:
            return web.Response(status=404)
        return web.json_response(today)

    async def create(request):
        body = await request.json()
        seen.append((request.path, body))
        return web.json_response({**body, "id": 40, "check_in_time": body["time"]}, status=201)

    async def checkout(request):
        body = await request.json()
        seen.append((request.path, body))
        return web.json_response({**today, "check_out_time": "2025-07-07T18:00:00+00:00", "overtime": body["overtime"]})

    app = web.Application()
    app.router.add_get("/api/users/me", me)
    app.router.add_get("/api/checkins/today", today_handler)
    app.router.add_post("/api/checkins", create)
    app.router.add_post("/api/checkins/checkout", checkout)
    return app


def _run_command(command, args, *, token="tok-1", today=None, signed_in=True):
    """Run one attendance command against an in-process backend."""

    async def runner():
        seen = []
        server = TestServer(_attendance_app(seen, today=today))
        await server.start_server()
        backend = _AcceptingBackend()
        store = MemoryStore({AUTH_TOKEN_KEY: token} if signed_in else {})
        manager = SessionManager(backend, store)
        await manager.restore()
        stream = io.StringIO()
        ctx = cli.CliContext(
            manager=manager,
            backend=HttpAuthBackend(),
            console=PresenceConsole(stream=stream),
            config=ClientConfig(),
            attendance=AttendanceClient(str(server.make_url("/")), timeout_seconds=5),
        )
        try:
            code = await cli.COMMANDS[command](args, ctx)
        finally:
            await server.close()
        return code, stream.getvalue(), seen, manager

    return asyncio.run(runner())


OPEN_RECORD = {"id": 31, "date": "2025-07-07", "check_in_time": "2025-07-07T08:00:00+00:00", "location_type": "home"}


def test_me_shows_profile():
    code, out, _, _ = _run_command("me", argparse.Namespace())

    assert code == 0
    assert "Ana Lopez" in out


def test_attendance_commands_require_session():
    code, _, seen, _ = _run_command("today", argparse.Namespace(), signed_in=False)

    assert code == 1
    assert seen == []


def test_expired_session_signs_out():
    code, _, _, manager = _run_command("me", argparse.Namespace(), token="stale")

    assert code == 1
    assert manager.state.is_authenticated is False
    assert manager.state.token is None


def test_today_without_record():
    code, out, _, _ = _run_command("today", argparse.Namespace())

    assert code == 0
    assert "No check-in yet today" in out


def test_checkin_posts_for_profile_user():
    args = argparse.Namespace(location="office", detail="HQ", notes=None, late_reason="traffic")

    code, out, seen, _ = _run_command("checkin", args)

    assert code == 0
    path, body = seen[0]
    assert path == "/api/checkins"
    assert body["user_id"] == 7
    assert body["location_detail"] == "HQ"
    assert "Checked in" in out


def test_checkout_requires_open_record():
    code, _, seen, _ = _run_command("checkout", argparse.Namespace())

    assert code == 1
    assert seen == []


def test_checkout_flags_overtime_for_long_day():
    code, _, seen, _ = _run_command("checkout", argparse.Namespace(), today=OPEN_RECORD)

    assert code == 0
    assert seen == [("/api/checkins/checkout", {"overtime": True, "status": "completed"})]


def test_attendance_parser_options():
    args = cli.build_parser().parse_args(["checkin", "--location", "client", "--late-reason", "bus"])

    assert args.location == "client"
    assert args.late_reason == "bus"
