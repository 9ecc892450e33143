"""
Typed failures raised by the room engine, the store and the code allocator.

Every error carries a machine-readable ``code`` (sent to clients as
``{"error": code}``) and the HTTP ``status`` transports should answer with.
"""
from __future__ import annotations


class CensusError(Exception):
    """Base class for every game failure."""

    status = 400
    default_code = "error"

    def __init__(self, message: str = "", code: str | None = None):
        self.code = code or self.default_code
        super().__init__(message or self.code)

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(CensusError):
    """Malformed or missing input (empty name, empty question, bad index)."""

    status = 400
    default_code = "invalid_payload"


class NotFoundError(CensusError):
    """Room or player does not exist."""

    status = 404
    default_code = "not_found"


class RoomNotFound(NotFoundError):
    default_code = "room_not_found"

    def __init__(self, code: str):
        self.room_code = code
        super().__init__(f"Room {code} not found")


class PlayerNotFound(NotFoundError):
    default_code = "player_not_found"

    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Player {player_id} not found")


class ForbiddenError(CensusError):
    """Actor lacks the required role, or is not a member of the room."""

    status = 403
    default_code = "forbidden"


class PhaseConflictError(CensusError):
    """Operation is not valid for the room's current phase (or the deadline passed)."""

    status = 409
    default_code = "wrong_phase"


class AllocationExhaustedError(CensusError):
    """No free room code could be found within the retry budget."""

    status = 503
    default_code = "code_space_exhausted"


class StorageError(CensusError):
    """Opaque failure from the room store. Never means "not found"."""

    status = 503
    default_code = "storage_unavailable"
