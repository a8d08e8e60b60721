"""
CLI client for the studyroom Django Channels chat.

Supports:
- WebSocket room chat:           /ws/rooms/
- HTTP room list:                GET /rooms/
- HTTP room message history:     GET /rooms/<room>/messages/

WebSocket protocol (`RoomConsumer`):
- Connect: /ws/rooms/ (optionally pass ?authorization=<AUTH_API_KEY>)
- Client sends:
  {"type": "joinRoom", "room": "...", "displayName": "..."}
  {"type": "leaveRoom", "room": "..."}
  {"type": "sendMessage", "room": "...", "displayName": "...", "text": "..."}
  {"type": "reactMessage", "messageId": "...", "reactionLabel": "...", "displayName": "...", "room": "..."}
  {"type": "pinMessage", "messageId": "...", "room": "..."}
  {"type": "deleteMessage", "messageId": "...", "room": "..."}
- Server sends {"type": ..., "data": ...} frames (room events also carry "room"):
  connected, presence, loadMessages, newMessage, updateMessage,
  deletedMessage, messageError, error

In chat mode every stdin line is sent as a message, except:
  /react <message_id> <label>   /pin <message_id>   /delete <message_id>
  /leave                        /quit
"""

from __future__ import annotations

import argparse
import asyncio
import inspect
import json
import sys
import urllib.parse
from typing import Any, Dict, Optional


def _rstrip_slash(s: str) -> str:
    return s[:-1] if s.endswith("/") else s


def _ws_rooms_url(ws_base: str, api_key: Optional[str]) -> str:
    base = _rstrip_slash(ws_base)
    url = f"{base}/ws/rooms/"
    if api_key:
        # WebSocketAuthMiddleware supports query-string auth
        url += f"?authorization={urllib.parse.quote(api_key)}"
    return url


def _http_url(http_base: str, path: str) -> str:
    return f"{_rstrip_slash(http_base)}{path}"


def _dumps(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


async def _stdin_lines() -> str:
    return await asyncio.to_thread(sys.stdin.readline)


def build_frame(line: str, *, room: str, display_name: str) -> Optional[Dict[str, Any]]:
    """
    Turn one line of user input into an outbound frame.

    Returns None for blank lines and for `/quit`; raises ValueError for a
    malformed slash command.
    """
    line = line.strip()
    if not line or line == "/quit":
        return None
    if not line.startswith("/"):
        return {"type": "sendMessage", "room": room, "displayName": display_name, "text": line}

    cmd, *args = line.split()
    if cmd == "/leave" and not args:
        return {"type": "leaveRoom", "room": room}
    if cmd == "/react" and len(args) == 2:
        return {
            "type": "reactMessage",
            "messageId": args[0],
            "reactionLabel": args[1],
            "displayName": display_name,
            "room": room,
        }
    if cmd == "/pin" and len(args) == 1:
        return {"type": "pinMessage", "messageId": args[0], "room": room}
    if cmd == "/delete" and len(args) == 1:
        return {"type": "deleteMessage", "messageId": args[0], "room": room}
    raise ValueError(f"Unknown or malformed command: {line}")


def format_message(message: Dict[str, Any]) -> str:
    flags = " [pinned]" if message.get("pinned") else ""
    reactions = message.get("reactions") or {}
    tally = " " + " ".join(f"{k}{v}" for k, v in reactions.items()) if reactions else ""
    return f"[{message.get('id')}] {message.get('displayName')}: {message.get('text')}{flags}{tally}"


def format_event(frame: Dict[str, Any]) -> Optional[str]:
    """Human-readable line for a server frame, or None to ignore it."""
    t = frame.get("type")
    data = frame.get("data")
    room = frame.get("room")
    if t == "connected":
        return f"[connected {data.get('connectionId')}]"
    if t == "presence":
        return f"[{room}] present: {', '.join(data or []) or '(nobody)'}"
    if t == "loadMessages":
        lines = [format_message(m) for m in data or []]
        return "\n".join([f"[{room}] {len(lines)} earlier message(s)"] + lines)
    if t == "newMessage":
        return format_message(data)
    if t == "updateMessage":
        return "(updated) " + format_message(data)
    if t == "deletedMessage":
        return f"(deleted {data.get('messageId')})"
    if t in ("messageError", "error"):
        return f"[error {data.get('error') if isinstance(data, dict) else data}]"
    return None


class HttpClient:
    def __init__(self, http_base: str, api_key: Optional[str]):
        self.http_base = http_base
        self.api_key = api_key
        self._session = None

    async def __aenter__(self) -> "HttpClient":
        try:
            import aiohttp  # type: ignore
        except ImportError:
            print("Missing dependency: aiohttp. Install with: pip install 'studyroom[client]'", file=sys.stderr)
            raise

        self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    def _headers(self) -> Dict[str, str]:
        h: Dict[str, str] = {"Accept": "application/json"}
        if self.api_key:
            h["X-API-KEY"] = self.api_key
        return h

    async def get_json(self, path: str) -> Any:
        assert self._session is not None
        url = _http_url(self.http_base, path)
        async with self._session.get(url, headers=self._headers()) as resp:
            text = await resp.text()
            try:
                data = json.loads(text) if text else {}
            except json.JSONDecodeError:
                raise RuntimeError(f"Non-JSON response from {path}: {resp.status} {text}")
            if resp.status >= 400:
                raise RuntimeError(f"HTTP {resp.status}: {data}")
            return data


async def ws_room_chat(
    *,
    ws_base: str,
    api_key: Optional[str],
    origin: Optional[str],
    room: str,
    display_name: str,
) -> int:
    try:
        import websockets  # type: ignore
    except ImportError:
        print("Missing dependency: websockets. Install with: pip install 'studyroom[client]'", file=sys.stderr)
        return 2

    ws_url = _ws_rooms_url(ws_base, api_key)

    extra_headers = []
    if origin:
        extra_headers.append(("Origin", origin))
    if api_key:
        extra_headers.append(("Authorization", api_key))

    async def _connect():
        kwargs: Dict[str, Any] = {}
        if extra_headers:
            sig = inspect.signature(websockets.connect)
            if "additional_headers" in sig.parameters:
                kwargs["additional_headers"] = extra_headers
            elif "extra_headers" in sig.parameters:
                kwargs["extra_headers"] = extra_headers
        return await websockets.connect(ws_url, **kwargs)

    async with (await _connect()) as ws:

        async def _print_frames() -> None:
            async for raw in ws:
                try:
                    frame = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                line = format_event(frame)
                if line:
                    sys.stdout.write(line + "\n")
                    sys.stdout.flush()

        reader = asyncio.create_task(_print_frames())
        try:
            await ws.send(_dumps({"type": "joinRoom", "room": room, "displayName": display_name}))
            sys.stderr.write("Type a line and press Enter to send. /quit to exit.\n")
            sys.stderr.flush()
            while True:
                line = await _stdin_lines()
                if not line or line.strip() == "/quit":
                    return 0
                try:
                    frame = build_frame(line, room=room, display_name=display_name)
                except ValueError as e:
                    sys.stderr.write(f"{e}\n")
                    continue
                if frame is not None:
                    await ws.send(_dumps(frame))
        finally:
            reader.cancel()


async def main() -> int:
    parser = argparse.ArgumentParser(description="CLI client for studyroom chat rooms")
    parser.add_argument("--http", default="http://localhost:8000", help="HTTP base, e.g. http://localhost:8000")
    parser.add_argument("--ws", default="ws://localhost:8000", help="WS base, e.g. ws://localhost:8000")
    parser.add_argument("--api-key", help="API key (must match AUTH_API_KEY)")
    parser.add_argument("--origin", help="Optional Origin header for WebSocket handshake")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_chat = sub.add_parser("chat", help="Join a room over WebSocket")
    p_chat.add_argument("--room", default="general")
    p_chat.add_argument("--name", required=True, help="Display name")

    sub.add_parser("rooms", help="List rooms (HTTP)")

    p_hist = sub.add_parser("history", help="Recent messages of a room (HTTP)")
    p_hist.add_argument("--room", required=True)

    args = parser.parse_args()

    if args.cmd == "chat":
        return await ws_room_chat(
            ws_base=args.ws,
            api_key=args.api_key,
            origin=args.origin,
            room=args.room,
            display_name=args.name,
        )

    async with HttpClient(args.http, args.api_key) as http:
        if args.cmd == "rooms":
            data = await http.get_json("/rooms/")
            print(json.dumps(data, indent=2, ensure_ascii=False))
            return 0
        if args.cmd == "history":
            data = await http.get_json(f"/rooms/{urllib.parse.quote(args.room, safe='')}/messages/")
            print(json.dumps(data, indent=2, ensure_ascii=False))
            return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
