from __future__ import annotations

from typing import Any, Protocol

from flask_socketio import SocketIO

from .events import ROOM_DELETED, ROOM_STATE


class Broadcaster(Protocol):
    def publish(self, code: str, state: dict[str, Any]) -> None: ...

    def publish_deleted(self, code: str) -> None: ...


class SocketIOBroadcaster:
    """Fans room updates out to every socket subscribed to the room code."""

    def __init__(self, socketio: SocketIO) -> None:
        self._socketio = socketio

    def publish(self, code: str, state: dict[str, Any]) -> None:
        self._socketio.emit(ROOM_STATE, state, to=code)

    def publish_deleted(self, code: str) -> None:
        self._socketio.emit(ROOM_DELETED, {"roomCode": code}, to=code)


class NullBroadcaster:
    def publish(self, code: str, state: dict[str, Any]) -> None:
        return None

    def publish_deleted(self, code: str) -> None:
        return None
