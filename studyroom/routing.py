"""
Project-level Channels routing.

Keeping routing in the Django project package ensures `studyroom.asgi` can import it.
"""

from rooms.routing import websocket_urlpatterns

__all__ = ["websocket_urlpatterns"]
