from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import IntEnum
from functools import wraps
from typing import Any
from urllib.parse import urlencode

from flask import g, redirect, render_template, request, url_for

logger = logging.getLogger(__name__)


class Role(IntEnum):
    USER = 1
    ADMIN = 2
    SUPER_ADMIN = 3

    @property
    def key(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: Any) -> "Role | None":
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls[value.strip().upper()]
        except KeyError:
            return None


ROLE_KEYS = tuple(r.key for r in Role)


def satisfies(required: Role | str | None, actual: Role | str | None) -> bool:
    """
    True when a user holding `actual` may access something gated on `required`.
    No requirement, or a requirement we don't recognize, lets everyone through.
    """
    if required is None:
        return True
    req = Role.parse(required)
    if req is None:
        return True
    act = Role.parse(actual)
    if act is None:
        return False
    return act >= req


@dataclass(frozen=True)
class AuthState:
    user: Any = None
    user_profile: Any = None
    loading: bool = False
    initialized: bool = True
    config_error: str | None = None

    @property
    def role(self) -> Any:
        profile = self.user_profile
        if profile is None:
            return None
        if isinstance(profile, Mapping):
            return profile.get("role")
        return getattr(profile, "role", None)


UNRESOLVED = AuthState(initialized=False)


@dataclass(frozen=True)
class Render:
    pass


@dataclass(frozen=True)
class ShowLoading:
    pass


@dataclass(frozen=True)
class Redirect:
    to: str
    from_location: str | None = None
    reason: str = ""


GuardDecision = Render | ShowLoading | Redirect


def evaluate_access(
    state: AuthState,
    *,
    location: str,
    required_role: Role | str | None = None,
    fallback_path: str = "/",
    login_path: str = "/login",
) -> GuardDecision:
    if state.loading or not state.initialized:
        return ShowLoading()
    if state.config_error:
        return Redirect(login_path, from_location=location, reason="config_error")
    if not state.user:
        return Redirect(login_path, from_location=location, reason="unauthenticated")
    if not satisfies(required_role, state.role):
        return Redirect(fallback_path, reason="forbidden")
    return Render()


def _location() -> str:
    nxt = request.full_path or request.path
    # Avoid trailing '?' from full_path when there is no query string.
    if nxt.endswith("?"):
        nxt = nxt[:-1]
    return nxt


def require_role(
    required_role: Role | str | None = None,
    fallback_path: str = "/",
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            state: AuthState = getattr(g, "auth_state", None) or UNRESOLVED
            decision = evaluate_access(
                state,
                location=_location(),
                required_role=required_role,
                fallback_path=fallback_path,
                login_path=url_for("auth.login_get"),
            )
            if isinstance(decision, Render):
                return fn(*args, **kwargs)
            if isinstance(decision, ShowLoading):
                logger.info("Auth not resolved for %s; showing loading page", request.path)
                return render_template("auth/loading.html"), 503, {"Retry-After": "1"}

            if decision.reason == "forbidden":
                g.missing_role = Role.parse(required_role)
                logger.warning(
                    "Forbidden: required_role=%s role=%s path=%s request_id=%s",
                    required_role,
                    state.role,
                    request.path,
                    getattr(g, "request_id", None),
                )
            else:
                logger.info("Redirecting to login (%s) from %s", decision.reason, decision.from_location)

            target = decision.to
            if decision.from_location:
                target = f"{target}?{urlencode({'next': decision.from_location})}"
            return redirect(target)

        return wrapped

    return decorator
