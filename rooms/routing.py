from django.urls import re_path

from .availability import AvailabilityGuard
from .config import get_room_settings
from .consumers import RoomConsumer
from .fanout import ChannelsFanout
from .persistence import DjangoMessageStore
from .presence import PresenceTracker
from .protocol import RoomPolicy, RoomProtocol


def build_protocol() -> RoomProtocol:
    """Wire one protocol (and its presence table) for this process."""
    settings = get_room_settings()
    store = DjangoMessageStore()
    return RoomProtocol(
        presence=PresenceTracker(),
        store=store,
        guard=AvailabilityGuard(store, timeout=settings.PROBE_TIMEOUT_SECONDS),
        fanout=ChannelsFanout(),
        policy=RoomPolicy.from_settings(settings),
    )


websocket_urlpatterns = [
    re_path(r"^ws/rooms/$", RoomConsumer.as_asgi(protocol=build_protocol())),
]
