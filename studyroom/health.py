from __future__ import annotations

import time

from django.http import JsonResponse

from rooms.persistence import DjangoMessageStore


async def health(request):
    """
    Health check endpoint.

    Reports whether the message database is reachable. The service itself
    stays up (and live presence keeps working) when it is not.
    """

    connected = await DjangoMessageStore().ping()
    return JsonResponse(
        {
            "status": "ok" if connected else "error",
            "database": "connected" if connected else "disconnected",
            "ts": int(time.time()),
        }
    )
