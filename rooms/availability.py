"""
Store liveness check consulted before every durable operation.

No retry, no queue and no back-off: each event asks again. A probe that does
not answer within `timeout` seconds counts as unavailable.
"""

from __future__ import annotations

import asyncio
import logging

from .persistence import MessageStore

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 2.0


class AvailabilityGuard:
    def __init__(self, store: MessageStore, timeout: float = DEFAULT_PROBE_TIMEOUT):
        self.store = store
        self.timeout = timeout

    async def is_available(self) -> bool:
        try:
            available = await asyncio.wait_for(self.store.ping(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Message store probe timed out after %ss", self.timeout)
            return False
        except Exception:
            logger.exception("Message store probe raised; treating store as unavailable")
            return False
        if not available:
            logger.warning("Message store unavailable")
        return bool(available)
