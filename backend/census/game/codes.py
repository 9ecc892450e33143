from __future__ import annotations

import logging
import secrets
from typing import Callable

from ..config import Config
from .errors import AllocationExhaustedError

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def generate_room_code(length: int | None = None, alphabet: str | None = None) -> str:
    """Random room code; uniqueness is the caller's concern."""
    chars = alphabet or Config.ROOM_CODE_ALPHABET
    n = length or Config.ROOM_CODE_LENGTH
    return "".join(secrets.choice(chars) for _ in range(n))


def allocate_room_code(
    is_taken: Callable[[str], bool],
    attempts: int | None = None,
    length: int | None = None,
    alphabet: str | None = None,
) -> str:
    budget = attempts or Config.ROOM_CODE_ATTEMPTS
    for attempt in range(1, budget + 1):
        code = generate_room_code(length=length, alphabet=alphabet)
        if not is_taken(code):
            return code
        logger.warning("Room code collision on %s (attempt %d/%d)", code, attempt, budget)

    raise AllocationExhaustedError(
        f"Unable to generate a unique room code after {budget} attempts"
    )
