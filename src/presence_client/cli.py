"""
src/presence_client/cli.py
Command-line front end: sign in, sign out and inspect the session.
"""

from __future__ import annotations

import argparse
import asyncio
import functools
import os
from datetime import datetime
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .attendance import AttendanceClient, format_duration, is_overtime
from .backend import HttpAuthBackend
from .biometrics import TotpPrompt
from .config import ClientConfig, load_config
from .console import PresenceConsole
from .env_utils import append_to_env_file, ensure_env_file
from .errors import AttendanceError, AuthErrorKind, BackendConnectionError, RegistrationError
from .guards import RouteDecision, guest_route, protected_route
from .logger import debug_detail, logger, progress, set_log_profile, spinner, step, success
from .session import SessionManager
from .storage import JsonFileStore
from .validation import validate_login_form, validate_registration_form


@dataclass
class CliContext:
    manager: SessionManager
    backend: HttpAuthBackend
    console: PresenceConsole
    config: ClientConfig
    attendance: AttendanceClient


def build_manager(
    config: ClientConfig,
    *,
    read_code: Callable[[str], str] = input,
) -> Tuple[SessionManager, HttpAuthBackend]:
    backend = HttpAuthBackend.from_config(config)
    manager = SessionManager(
        backend,
        JsonFileStore(config.state_file),
        biometrics=TotpPrompt(config.totp_secret, read_code),
    )
    manager.subscribe(lambda state: debug_detail(f"Session -> {state!r}"))
    return manager, backend


def _report_error(manager: SessionManager) -> None:
    error = manager.state.error
    if error:
        logger.error(error.message)


async def cmd_login(args, ctx: CliContext) -> int:
    manager, console = ctx.manager, ctx.console
    if guest_route(manager.state) == RouteDecision.REDIRECT_HOME:
        success("Already signed in")
        return 0

    email = args.email or console.prompt("Email:", default=ctx.config.default_email)
    password = console.prompt_secret("Password:")
    errors = validate_login_form(email, password)
    if errors:
        console.field_errors(errors)
        logger.error(AuthErrorKind.VALIDATION_ERROR.message)
        return 1

    async with spinner(f"Signing in as {email}") as spin:
        ok = await manager.login(email, password, save_biometrics=args.remember)
        if not ok:
            spin.fail(manager.state.error.message if manager.state.error else None)
    if ok and args.remember and not manager.is_biometric_login_enabled():
        logger.warning("Signed in, but credentials could not be saved for biometric login")
    return 0 if ok else 1


async def cmd_biometric(args, ctx: CliContext) -> int:
    manager = ctx.manager
    if guest_route(manager.state) == RouteDecision.REDIRECT_HOME:
        success("Already signed in")
        return 0
    step("Biometric sign-in")
    ok = await manager.authenticate_with_biometrics()
    if ok:
        success("Signed in")
    else:
        _report_error(manager)
    return 0 if ok else 1


async def cmd_logout(args, ctx: CliContext) -> int:
    await ctx.manager.logout(clear_biometric_credentials=args.forget)
    success("Signed out" + (" and forgot saved credentials" if args.forget else ""))
    return 0


async def cmd_status(args, ctx: CliContext) -> int:
    manager, console = ctx.manager, ctx.console
    decision = protected_route(manager.state)
    console.session_table(
        manager.state,
        decision,
        biometric_enabled=manager.is_biometric_login_enabled(),
        info=manager.user_info(),
    )
    return 0 if decision == RouteDecision.ALLOW else 1


async def cmd_check(args, ctx: CliContext) -> int:
    manager = ctx.manager
    if not manager.state.is_authenticated:
        logger.warning("Not signed in")
        return 1
    if manager.needs_auth_refresh():
        logger.warning("Session token is about to expire")
    if await manager.refresh():
        success("Session is valid")
        return 0
    logger.error("Session was revoked; please sign in again")
    return 1


async def cmd_register(args, ctx: CliContext) -> int:
    console = ctx.console
    console.headline("Create account")
    fields = {
        "email": args.email or console.prompt("Email:"),
        "name": console.prompt("Name:"),
        "surname": console.prompt("Surname:"),
        "phone": console.prompt("Phone:"),
    }
    password = console.prompt_secret("Password:")
    confirmation = console.prompt_secret("Repeat password:")
    errors = validate_registration_form(password=password, confirmation=confirmation, **fields)
    if errors:
        console.field_errors(errors)
        return 1
    try:
        async with spinner("Creating account"):
            await ctx.backend.register(password=password, **fields)
    except BackendConnectionError:
        logger.error(AuthErrorKind.CONNECTION_ERROR.message)
        return 1
    except RegistrationError as exc:
        logger.error(str(exc))
        return 1
    console.text_block("Account created. Sign in with `presence-client login`.")
    return 0


async def cmd_reset(args, ctx: CliContext) -> int:
    console = ctx.console
    if not args.yes and not console.confirm("Forget the session and saved credentials?", default=False):
        return 1
    await ctx.manager.clear_state()
    success("Local session data removed")
    return 0


def attendance_command(func):
    """Run ``func(args, ctx, token)`` only for a signed-in session."""

    @functools.wraps(func)
    async def wrapper(args, ctx: CliContext) -> int:
        state = ctx.manager.state
        if protected_route(state) != RouteDecision.ALLOW or not state.token:
            logger.error("Not signed in; run `presence-client login` first")
            return 1
        try:
            return await func(args, ctx, state.token)
        except BackendConnectionError:
            logger.error(AuthErrorKind.CONNECTION_ERROR.message)
            return 1
        except AttendanceError as exc:
            logger.error(str(exc))
            if exc.session_expired:
                await ctx.manager.logout()
            return 1

    return wrapper


@attendance_command
async def cmd_me(args, ctx: CliContext, token: str) -> int:
    progress("Fetching your profile")
    ctx.console.profile_table(await ctx.attendance.current_user(token))
    return 0


@attendance_command
async def cmd_today(args, ctx: CliContext, token: str) -> int:
    progress("Looking up today's check-in")
    record = await ctx.attendance.today(token)
    if record is None:
        ctx.console.text_block("No check-in yet today. Run `presence-client checkin`.")
        return 0
    ctx.console.checkins_table([record], title="Today")
    return 0


@attendance_command
async def cmd_history(args, ctx: CliContext, token: str) -> int:
    progress("Fetching attendance history")
    records = await ctx.attendance.history(token)
    if not records:
        ctx.console.text_block("No attendance records yet.")
        return 0
    ctx.console.checkins_table(records[-args.limit:] if args.limit else records, title="History")
    return 0


@attendance_command
async def cmd_checkin(args, ctx: CliContext, token: str) -> int:
    attendance, console = ctx.attendance, ctx.console
    progress("Fetching your profile")
    profile = await attendance.current_user(token)
    now = datetime.now().astimezone()
    late_reason = args.late_reason
    if profile.is_late(now) and not late_reason:
        late_reason = console.prompt(f"Your day starts at {profile.checkin_start_time}. Reason for arriving late:")
    async with spinner("Checking in"):
        record = await attendance.check_in(
            token,
            user_id=profile.id,
            location_type=args.location,
            location_detail=args.detail or "",
            notes=args.notes or "",
            late_reason=late_reason,
            now=now,
        )
    console.checkins_table([record], title="Checked in")
    return 0


@attendance_command
async def cmd_checkout(args, ctx: CliContext, token: str) -> int:
    attendance, console = ctx.attendance, ctx.console
    progress("Looking up today's check-in")
    record = await attendance.today(token)
    if record is None:
        logger.error("You have not checked in today")
        return 1
    if record.checked_out:
        logger.warning("Already checked out today")
        return 1
    worked = record.worked(datetime.now().astimezone())
    async with spinner("Checking out"):
        closed = await attendance.check_out(token, overtime=is_overtime(worked))
    if worked is not None:
        success(f"Worked {format_duration(worked)} today")
    console.checkins_table([closed], title="Checked out")
    return 0


COMMANDS = {
    "login": cmd_login,
    "biometric": cmd_biometric,
    "logout": cmd_logout,
    "status": cmd_status,
    "check": cmd_check,
    "register": cmd_register,
    "reset": cmd_reset,
    "me": cmd_me,
    "today": cmd_today,
    "history": cmd_history,
    "checkin": cmd_checkin,
    "checkout": cmd_checkout,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="presence-client", description="Attendance client session tools")
    parser.add_argument("--env-file", default=os.getenv("ENV_FILE", ".env"), help="Path to the .env file")
    parser.add_argument("--profile", choices=["quiet", "user", "debug"], help="Console log verbosity")
    sub = parser.add_subparsers(dest="command", required=True)

    p_login = sub.add_parser("login", help="Sign in with email and password")
    p_login.add_argument("--email", help="Account email (prompted if omitted)")
    p_login.add_argument("--remember", action="store_true", help="Save credentials for biometric sign-in")

    sub.add_parser("biometric", help="Sign in with saved credentials after a one-time code check")

    p_logout = sub.add_parser("logout", help="Sign out")
    p_logout.add_argument("--forget", action="store_true", help="Also remove saved credentials")

    sub.add_parser("status", help="Show the current session")
    sub.add_parser("check", help="Re-validate the session with the server")

    p_register = sub.add_parser("register", help="Create an account")
    p_register.add_argument("--email", help="Account email (prompted if omitted)")

    p_reset = sub.add_parser("reset", help="Forget everything stored on this device")
    p_reset.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    sub.add_parser("me", help="Show your profile")
    sub.add_parser("today", help="Show today's check-in")

    p_history = sub.add_parser("history", help="List past check-ins")
    p_history.add_argument("--limit", type=int, default=0, help="Only show the most recent N records")

    p_checkin = sub.add_parser("checkin", help="Check in for today")
    p_checkin.add_argument("--location", default="home", help="Location type (home, office, client...)")
    p_checkin.add_argument("--detail", help="Address or site name")
    p_checkin.add_argument("--notes", help="Free-text notes")
    p_checkin.add_argument("--late-reason", help="Reason for arriving late (prompted when late)")

    sub.add_parser("checkout", help="Check out for today")

    p_config = sub.add_parser("configure", help="Persist settings to the .env file")
    p_config.add_argument("--api-url", help="Backend base URL")
    p_config.add_argument("--email", help="Default account email")
    return parser


def _configure(args) -> int:
    updates = {"PRESENCE_API_URL": args.api_url, "PRESENCE_EMAIL": args.email}
    updates = {k: v for k, v in updates.items() if v}
    if not updates:
        logger.warning("Nothing to configure; pass --api-url or --email")
        return 1
    try:
        ensure_env_file(args.env_file)
        for key, value in updates.items():
            append_to_env_file(args.env_file, key, value)
    except OSError as exc:
        logger.error("Could not update %s: %s", args.env_file, exc)
        return 1
    success(f"Saved {', '.join(updates)} to {args.env_file}")
    return 0


async def run(args, config: ClientConfig, console: PresenceConsole) -> int:
    manager, backend = build_manager(config, read_code=console.prompt)
    await manager.restore()
    ctx = CliContext(
        manager=manager,
        backend=backend,
        console=console,
        config=config,
        attendance=AttendanceClient.from_config(config),
    )
    return await COMMANDS[args.command](args, ctx)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.profile:
        set_log_profile(args.profile)
    if args.command == "configure":
        return _configure(args)
    config = load_config(args.env_file)
    try:
        return asyncio.run(run(args, config, PresenceConsole()))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
