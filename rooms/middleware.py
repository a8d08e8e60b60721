"""
WebSocket authorization middleware.

When AUTH_API_KEY is set, a WebSocket upgrade must carry it either in the
Authorization header or as `?authorization=` / `?auth=` in the query string.
"""

import hmac
from typing import Optional
from urllib.parse import parse_qs

from channels.middleware import BaseMiddleware
from django.conf import settings


def get_auth_api_key() -> Optional[str]:
    return getattr(settings, "AUTH_API_KEY", None) or None


def _authorization_from_scope(scope) -> Optional[str]:
    for key, value in scope.get("headers") or []:
        if key.lower() == b"authorization":
            return value.decode("utf-8", errors="replace").strip()

    query_string = (scope.get("query_string") or b"").decode("utf-8", errors="replace")
    params = parse_qs(query_string)
    for name in ("authorization", "auth"):
        if params.get(name):
            return params[name][0]
    return None


class WebSocketAuthMiddleware(BaseMiddleware):
    async def __call__(self, scope, receive, send):
        expected_key = get_auth_api_key()
        if not expected_key:
            # No key configured: allow connection (development).
            return await super().__call__(scope, receive, send)

        provided = _authorization_from_scope(scope)
        if not provided:
            await send({"type": "websocket.close", "code": 4401, "reason": "Authorization header missing"})
            return
        if not hmac.compare_digest(provided.encode("utf-8"), expected_key.encode("utf-8")):
            await send({"type": "websocket.close", "code": 4401, "reason": "Invalid authorization key"})
            return

        return await super().__call__(scope, receive, send)
