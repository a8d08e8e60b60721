"""
Django async views for historical reads.

Live traffic goes over the WebSocket; these endpoints let a client list
rooms and fetch a room's recent messages without joining it.
"""

import logging

from django.db import DatabaseError
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from .config import get_room_settings
from .exceptions import StoreError
from .models import Room
from .persistence import DjangoMessageStore

logger = logging.getLogger(__name__)


@require_http_methods(["GET"])
async def room_list(request):
    """All persisted rooms, by name."""
    try:
        rooms = [
            {"id": room.pk, "name": room.name, "createdAt": room.created_at.isoformat()}
            async for room in Room.objects.all()
        ]
    except DatabaseError:
        logger.exception("Error fetching rooms")
        return JsonResponse({"error": "Failed to fetch rooms"}, status=500)
    return JsonResponse(rooms, safe=False)


@require_http_methods(["GET"])
async def room_messages(request, room: str):
    """Up to HISTORY_LIMIT most recent messages of `room`, oldest first."""
    limit = get_room_settings().HISTORY_LIMIT
    try:
        records = await DjangoMessageStore().find_by_room(room, limit, ascending=True)
    except StoreError:
        logger.exception("Error fetching messages for room %s", room)
        return JsonResponse({"error": "Failed to fetch messages"}, status=500)
    return JsonResponse([record.to_wire() for record in records], safe=False)
