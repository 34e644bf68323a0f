"""
Hash routing: ``#route?key=value`` locations, route guards and the
query-string spelling Streamlit can actually see on the server.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional
from urllib.parse import parse_qsl, urlencode


class Route(str, enum.Enum):
    HOME = "home"
    LOGIN = "login"
    REGISTER = "register"
    CHECK_EMAIL = "check-email"
    VERIFY_EMAIL = "verify-email"
    MAGIC_LINK = "magic-link"
    FORGOT_PASSWORD = "forgot-password"
    RESET_PASSWORD = "reset-password"
    APP = "app"


AUTHENTICATED_ONLY = frozenset({Route.APP.value})
GUEST_ONLY = frozenset({Route.LOGIN.value, Route.REGISTER.value})
KNOWN_ROUTES = frozenset(route.value for route in Route)

ROUTE_PARAM = "route"


@dataclass(frozen=True)
class Location:
    route: str = Route.HOME.value
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def known(self) -> bool:
        return self.route in KNOWN_ROUTES


def parse_hash(hash_value: Optional[str]) -> Location:
    raw = (hash_value or "").strip()
    if not raw or raw == "#":
        return Location(Route.HOME.value, {})

    trimmed = raw[1:] if raw.startswith("#") else raw
    route, _, query = trimmed.partition("?")
    params: Dict[str, str] = {}
    if query:
        for key, value in parse_qsl(query, keep_blank_values=True):
            params[key] = value
    return Location(route or Route.HOME.value, params)


def build_hash(route: str, **params: Optional[str]) -> str:
    route = route.value if isinstance(route, Route) else route
    clean = {key: value for key, value in params.items() if value is not None}
    if not clean:
        return f"#{route}"
    return f"#{route}?{urlencode(clean)}"


def guard(location: Location, authenticated: bool) -> Optional[str]:
    """Return the hash to redirect to, or None when the route may render."""
    if location.route in AUTHENTICATED_ONLY and not authenticated:
        return build_hash(Route.LOGIN)
    if location.route in GUEST_ONLY and authenticated:
        return build_hash(Route.APP)
    return None


def location_from_query_params(query_params: Mapping[str, str]) -> str:
    """``?route=verify-email&token=abc`` -> ``#verify-email?token=abc``."""
    params = dict(query_params)
    route = params.pop(ROUTE_PARAM, None)
    if not route:
        return build_hash(Route.HOME)
    return build_hash(route, **params)


def query_params_for(hash_value: str) -> Dict[str, str]:
    location = parse_hash(hash_value)
    if location.route == Route.HOME.value and not location.params:
        return {}
    return {ROUTE_PARAM: location.route, **location.params}


__all__ = [
    "Route",
    "Location",
    "AUTHENTICATED_ONLY",
    "GUEST_ONLY",
    "KNOWN_ROUTES",
    "parse_hash",
    "build_hash",
    "guard",
    "location_from_query_params",
    "query_params_for",
]
