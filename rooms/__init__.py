"""
Realtime rooms app.

This app contains:
- A Channels consumer for `/ws/rooms/`
- In-memory presence tracking (single process)
- The room event protocol (join/leave/send/react/pin/delete/disconnect)
- A Django ORM adapter for the message store
"""
