from __future__ import annotations

# Client -> server
ROOM_SUBSCRIBE = "room:subscribe"
ROOM_UNSUBSCRIBE = "room:unsubscribe"

# Server -> client
ROOM_STATE = "room:state"
ROOM_DELETED = "room:deleted"
ROOM_ERROR = "room:error"
