"""Route guards: decide which screen to show for a session snapshot."""

from __future__ import annotations

from enum import Enum

from .state import SessionState

HOME_ROUTE = "/home"
LOGIN_ROUTE = "/login"


class RouteDecision(str, Enum):
    LOADING = "loading"
    ALLOW = "allow"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_HOME = "redirect_home"


def protected_route(state: SessionState) -> RouteDecision:
    """Screens that need a signed-in user (home, profile, history)."""
    if not state.is_initialized:
        return RouteDecision.LOADING
    if state.is_authenticated:
        return RouteDecision.ALLOW
    return RouteDecision.REDIRECT_LOGIN


def guest_route(state: SessionState) -> RouteDecision:
    """Screens only for signed-out users (login, register)."""
    if not state.is_initialized:
        return RouteDecision.LOADING
    if not state.is_authenticated:
        return RouteDecision.ALLOW
    return RouteDecision.REDIRECT_HOME


def redirect_target(decision: RouteDecision) -> str | None:
    if decision == RouteDecision.REDIRECT_LOGIN:
        return LOGIN_ROUTE
    if decision == RouteDecision.REDIRECT_HOME:
        return HOME_ROUTE
    return None
