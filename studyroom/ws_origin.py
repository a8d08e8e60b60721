"""
WebSocket origin validator for deployments behind a reverse proxy.

Channels' AllowedHostsOriginValidator rejects upgrades without an Origin
header. Behind a proxy the Origin can be dropped, and the CLI client does not
send one. This validator:
- Allows when Origin's host is in ALLOWED_HOSTS (same as Channels).
- Allows when Origin is missing or not allowed BUT Host or X-Forwarded-Host is
  in ALLOWED_HOSTS.
- Allows an Origin-less upgrade whose Host is a private IP (proxy hop).
- Logs when a connection is denied (origin/host values, no secrets).
"""
from __future__ import annotations

import ipaddress
import logging
from urllib.parse import urlparse

from channels.security.websocket import WebsocketDenier
from django.conf import settings
from django.http.request import is_same_domain

logger = logging.getLogger(__name__)

# ASGI app that denies WebSocket connections (used when origin validation fails).
_denier_app = WebsocketDenier.as_asgi()


def _get_header(scope: dict, name: str) -> str | None:
    want = name.lower().encode("ascii")
    for key, value in scope.get("headers") or []:
        if key == want:
            return value.decode("utf-8", errors="replace").strip()
    return None


def _hostname_from_host_header(host: str) -> str:
    """Return hostname part (strip port) from Host header."""
    if not host:
        return ""
    return host.split(":", 1)[0].strip().lower()


def _pattern_host(pattern: str) -> str | None:
    if "://" in pattern:
        return urlparse(pattern).hostname
    return (urlparse("//" + pattern).hostname or pattern).lower()


def _hostname_allowed(hostname: str, allowed_hosts: list[str]) -> bool:
    if not hostname:
        return False
    for pattern in allowed_hosts:
        if pattern == "*":
            return True
        pattern_host = _pattern_host(pattern)
        if pattern_host and is_same_domain(hostname, pattern_host):
            return True
    return False


def origin_allowed(origin_value: str, allowed_hosts: list[str]) -> bool:
    try:
        hostname = urlparse(origin_value).hostname
    except ValueError:
        return False
    return _hostname_allowed(hostname or "", allowed_hosts)


def host_allowed(host_header: str, allowed_hosts: list[str]) -> bool:
    return _hostname_allowed(_hostname_from_host_header(host_header), allowed_hosts)


def is_private_ip(hostname: str) -> bool:
    try:
        return ipaddress.ip_address(hostname).is_private
    except ValueError:
        return False


def _forwarded_host(scope: dict) -> str | None:
    value = _get_header(scope, "x-forwarded-host")
    # Proxy chains append; the client-facing host is first.
    return value.split(",")[0].strip() if value else None


def upgrade_allowed(scope: dict, allowed_hosts: list[str]) -> bool:
    """Decide whether a WebSocket upgrade may proceed."""
    origin_value = _get_header(scope, "origin")
    if origin_value and origin_allowed(origin_value, allowed_hosts):
        return True

    host_value = _get_header(scope, "host")
    forwarded_host = _forwarded_host(scope)
    if any(h and host_allowed(h, allowed_hosts) for h in (host_value, forwarded_host)):
        return True

    return bool(not origin_value and host_value and is_private_ip(_hostname_from_host_header(host_value)))


def _allowed_hosts() -> list[str]:
    allowed_hosts = list(getattr(settings, "ALLOWED_HOSTS", None) or [])
    if settings.DEBUG and not allowed_hosts:
        return ["localhost", "127.0.0.1", "[::1]"]
    return allowed_hosts


class AllowedHostsOrForwardedHostOriginValidator:
    """ASGI wrapper that denies WebSocket upgrades `upgrade_allowed` rejects."""

    def __init__(self, application):
        self.application = application

    async def __call__(self, scope, receive, send):
        if scope.get("type") != "websocket":
            raise ValueError("AllowedHostsOrForwardedHostOriginValidator only supports WebSocket")

        allowed_hosts = _allowed_hosts()
        if upgrade_allowed(scope, allowed_hosts):
            return await self.application(scope, receive, send)

        logger.warning(
            "WebSocket origin denied: origin=%s host=%s x_forwarded_host=%s allowed_hosts=%s path=%s",
            _get_header(scope, "origin") or "(none)",
            _get_header(scope, "host") or "(none)",
            _forwarded_host(scope) or "(none)",
            allowed_hosts,
            scope.get("path") or "",
        )
        return await _denier_app(scope, receive, send)
