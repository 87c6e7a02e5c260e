"""
src/presence_client/console.py
Console rendering utilities for the presence-client CLI.
"""
from __future__ import annotations

import getpass
import os
import shutil
import sys
import textwrap
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table, box

from .attendance import CheckIn, UserProfile, format_duration
from .guards import RouteDecision
from .state import SessionState

__all__ = ["PresenceConsole", "ConsolePalette"]


@dataclass
class ConsolePalette:
    """Simple ANSI-aware palette used by PresenceConsole."""

    reset: str = "\033[0m"
    bold: str = "\033[1m"
    dim: str = "\033[2m"
    blue: str = "\033[34m"
    green: str = "\033[32m"
    yellow: str = "\033[33m"
    red: str = "\033[31m"
    orange: str = "\033[38;2;230;125;33m"

    @property
    def disabled(self) -> bool:
        return bool(os.getenv("NO_COLOR"))

    def apply(self, text: str, *styles: str) -> str:
        if self.disabled or not styles:
            return text
        return f"{''.join(styles)}{text}{self.reset}"


_DECISION_LABELS = {
    RouteDecision.LOADING: ("Checking your session…", "yellow"),
    RouteDecision.ALLOW: ("Signed in", "green"),
    RouteDecision.REDIRECT_LOGIN: ("Signed out – run `presence-client login`", "red"),
    RouteDecision.REDIRECT_HOME: ("Already signed in", "green"),
}


class PresenceConsole:
    """Small helper for prompts and status output."""

    def __init__(self, stream=None) -> None:
        self.palette = ConsolePalette()
        self.stream = stream or sys.stdout
        self.width = max(60, min(shutil.get_terminal_size((100, 20)).columns, 100))
        self.rich = Console(file=self.stream, no_color=self.palette.disabled, highlight=False)

    def _print(self, text: str = "") -> None:
        print(text, file=self.stream)

    def _rule(self, label: str = "", *, char: str = "═") -> str:
        label_text = f" {label} " if label else ""
        pad_total = max(self.width - len(label_text), 0)
        left = pad_total // 2
        line = f"{char * left}{label_text}{char * (pad_total - left)}"
        return self.palette.apply(line, self.palette.orange)

    def headline(self, title: str) -> None:
        self._print(self._rule(title))

    def text_block(self, text: str, *, indent: int = 2, tone: Optional[str] = None) -> None:
        wrapper = textwrap.TextWrapper(width=self.width - indent, initial_indent=" " * indent, subsequent_indent=" " * indent)
        payload = "\n".join(wrapper.fill(line) if line.strip() else "" for line in text.splitlines())
        if tone:
            payload = self.palette.apply(payload, getattr(self.palette, tone, ""))
        self._print(payload)

    def field_errors(self, errors: Dict[str, str]) -> None:
        for field, message in errors.items():
            self._print(self.palette.apply(f"  ✗ {field}: {message}", self.palette.red))

    def prompt(self, prompt_text: str, *, default: Optional[str] = None) -> str:
        suffix = f" [{default}]" if default else ""
        prompt = self.palette.apply(f"{prompt_text.strip()}{suffix} ", self.palette.green, self.palette.bold)
        try:
            value = input(prompt)
        except EOFError:
            value = ""
        return value.strip() or (default or "")

    def prompt_secret(self, prompt_text: str) -> str:
        try:
            return getpass.getpass(f"{prompt_text.strip()} ")
        except EOFError:
            return ""

    def confirm(self, prompt_text: str, *, default: bool = True) -> bool:
        yes_no = "Y/n" if default else "y/N"
        while True:
            raw = self.prompt(f"{prompt_text} [{yes_no}]").lower()
            if not raw:
                return default
            if raw in ("y", "yes"):
                return True
            if raw in ("n", "no"):
                return False
            self._print(self.palette.apply("Please respond with yes or no.", self.palette.yellow))

    def session_table(
        self,
        state: SessionState,
        decision: RouteDecision,
        *,
        biometric_enabled: bool,
        info: Optional[Dict[str, Any]] = None,
    ) -> None:
        label, style = _DECISION_LABELS[decision]
        table = Table(title="Presence session", box=box.ROUNDED, show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Status", f"[{style}]{label}[/{style}]")
        table.add_row("Biometric login", "enabled" if biometric_enabled else "disabled")
        if state.error:
            table.add_row("Last error", f"[red]{state.error.message}[/red]")
        for key, value in (info or {}).items():
            if key in ("has_token", "is_authenticated"):
                continue
            table.add_row(key.replace("_", " ").capitalize(), escape(str(value)))
        self.rich.print(table)

    def profile_table(self, profile: UserProfile) -> None:
        table = Table(title="Your profile", box=box.ROUNDED, show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        rows = [
            ("Name", profile.full_name),
            ("Email", profile.email),
            ("Phone", profile.phone),
            ("Role", profile.role),
            ("Timezone", profile.timezone),
            ("Check-in starts", profile.checkin_start_time),
        ]
        for label, value in rows:
            if value:
                table.add_row(label, escape(value))
        if profile.pending_approval:
            table.add_row("Account", "[yellow]pending approval[/yellow]")
        elif profile.deactivated:
            table.add_row("Account", "[red]deactivated[/red]")
        self.rich.print(table)

    def checkins_table(self, records: Iterable[CheckIn], *, title: str = "Attendance") -> None:
        table = Table(title=title, box=box.ROUNDED)
        table.add_column("Date", style="bold")
        table.add_column("In")
        table.add_column("Out")
        table.add_column("Worked", justify="right")
        table.add_column("Location")
        table.add_column("Flags")
        for record in records:
            worked = record.worked()
            flags = [name for name, on in (("late", record.late), ("overtime", record.overtime)) if on]
            table.add_row(
                escape(record.date),
                escape(_clock(record.check_in_time)),
                escape(_clock(record.check_out_time)) if record.checked_out else "[yellow]open[/yellow]",
                format_duration(worked) if worked is not None else "–",
                escape(record.location_detail or record.location_type or "–"),
                ", ".join(flags),
            )
        self.rich.print(table)


def _clock(value: Optional[str]) -> str:
    # "2025-07-07T09:01:02-03:00" -> "09:01"
    if not value:
        return "–"
    text = value.split("T", 1)[-1]
    return text[:5]
