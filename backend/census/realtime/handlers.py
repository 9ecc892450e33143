from __future__ import annotations

import logging

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.codes import normalize_code
from ..game.errors import CensusError
from ..game.service import RoomService
from ..game.visibility import room_public_state
from .events import ROOM_ERROR, ROOM_STATE, ROOM_SUBSCRIBE, ROOM_UNSUBSCRIBE

logger = logging.getLogger(__name__)


def register_socketio_handlers(socketio: SocketIO, service: RoomService) -> None:
    @socketio.on(ROOM_SUBSCRIBE)
    def room_subscribe(data):
        payload = data if isinstance(data, dict) else {}
        room_code = normalize_code(str(payload.get("roomCode", "")))

        if not room_code:
            emit(ROOM_ERROR, {"error": "invalid_payload"})
            return

        try:
            room = service.get_room(room_code)
        except CensusError as e:
            emit(ROOM_ERROR, {"error": e.code, "roomCode": room_code})
            return

        join_room(room_code)
        logger.debug("Socket %s subscribed to room %s", request.sid, room_code)
        emit(ROOM_STATE, room_public_state(room))

    @socketio.on(ROOM_UNSUBSCRIBE)
    def room_unsubscribe(data):
        payload = data if isinstance(data, dict) else {}
        room_code = normalize_code(str(payload.get("roomCode", "")))
        if not room_code:
            emit(ROOM_ERROR, {"error": "invalid_payload"})
            return

        leave_room(room_code)
        logger.debug("Socket %s left room %s", request.sid, room_code)
