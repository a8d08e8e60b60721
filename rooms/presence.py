"""
Presence tracking (who is in which room).

WHY:
- Channels groups do not provide a way to list members.
- Presence is single-process: one PresenceTracker is built per process and
  handed to every consumer (see `rooms.routing.build_protocol`).

Design:
- room -> {connection_id: display_name}, insertion ordered (dicts keep order).
- Every method is synchronous. Callers in the event loop therefore see each
  mutation atomically; no lock is needed under asyncio.
- Rooms with no members left are pruned.
"""

from __future__ import annotations

from typing import Dict, List


class PresenceTracker:
    def __init__(self) -> None:
        self._rooms: Dict[str, Dict[str, str]] = {}

    def join(self, room: str, connection_id: str, display_name: str) -> None:
        """
        Register (or rename) a connection in `room`.

        Re-joining keeps the connection's original position in the snapshot.
        """
        self._rooms.setdefault(room, {})[connection_id] = display_name

    def leave(self, room: str, connection_id: str) -> bool:
        """Remove a connection from `room`. Returns False if it was not there."""
        members = self._rooms.get(room)
        if members is None or connection_id not in members:
            return False
        del members[connection_id]
        if not members:
            del self._rooms[room]
        return True

    def disconnect_all(self, connection_id: str) -> List[str]:
        """
        Remove a connection from every room it appears in.

        Scans all rooms rather than trusting the one-room-per-connection
        convention. Returns the rooms that were affected.
        """
        affected = [room for room, members in self._rooms.items() if connection_id in members]
        for room in affected:
            self.leave(room, connection_id)
        return affected

    def snapshot(self, room: str) -> List[str]:
        """Display names present in `room`, in join order."""
        return list(self._rooms.get(room, {}).values())

    def rooms_for(self, connection_id: str) -> List[str]:
        return [room for room, members in self._rooms.items() if connection_id in members]

    def __contains__(self, room: object) -> bool:
        return room in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
