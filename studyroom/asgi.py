"""
ASGI config for the studyroom project.

It exposes the ASGI callable as a module-level variable named ``application``.
"""

import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "studyroom.settings")

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from django.conf import settings  # noqa: E402
from django.core.asgi import get_asgi_application  # noqa: E402

# Initialize Django before importing anything that touches models.
django_asgi_app = get_asgi_application()

from rooms.middleware import WebSocketAuthMiddleware  # noqa: E402
from studyroom.routing import websocket_urlpatterns  # noqa: E402
from studyroom.ws_origin import AllowedHostsOrForwardedHostOriginValidator  # noqa: E402

# Channels router for WebSockets.
#
# AllowedHostsOrForwardedHostOriginValidator (when DEBUG is False):
# - Allows when Origin's host is in ALLOWED_HOSTS, or when Origin is missing but
#   Host / X-Forwarded-Host is in ALLOWED_HOSTS (proxies may drop Origin).
websocket_app = WebSocketAuthMiddleware(URLRouter(websocket_urlpatterns))
if not settings.DEBUG:
    websocket_app = AllowedHostsOrForwardedHostOriginValidator(websocket_app)

application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        "websocket": websocket_app,
    }
)
