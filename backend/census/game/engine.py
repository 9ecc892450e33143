"""
Room engine: every game action as a pure state transition.

Each operation takes the current ``Room`` plus its arguments and the ``now_ms``
snapshot of the request, validates everything first, and only then applies
the change to a copy. The input room is never mutated, so a rejected action
leaves the caller's state untouched. No I/O happens here; loading, saving and
broadcasting belong to ``census.game.service``.
"""
from __future__ import annotations

import copy
import math
import uuid

from ..config import Config
from .errors import ForbiddenError, PhaseConflictError, PlayerNotFound, ValidationError
from .models import (
    CompletePhase,
    LobbyPhase,
    Player,
    Question,
    QuestionPhase,
    ReviewPhase,
    Room,
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _clean_text(value: object) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()


def _validate_name(name: object) -> str:
    n = _clean_text(name)
    if not n:
        raise ValidationError("Name is required", code="empty_name")
    if len(n) > Config.MAX_NAME_LENGTH:
        raise ValidationError(
            f"Name must be at most {Config.MAX_NAME_LENGTH} characters", code="name_too_long"
        )
    for ch in n:
        if ord(ch) < 32:
            raise ValidationError("Name contains control characters", code="invalid_name")
    return n


def normalize_duration(value: object) -> int:
    """Floor and clamp a question duration; missing or non-finite means the default."""
    if value is None:
        return Config.DEFAULT_QUESTION_DURATION_SEC
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError("Question duration must be a number", code="invalid_duration")
    if not math.isfinite(value):
        return Config.DEFAULT_QUESTION_DURATION_SEC
    return max(
        Config.MIN_QUESTION_DURATION_SEC,
        min(Config.MAX_QUESTION_DURATION_SEC, int(math.floor(value))),
    )


def ensure_member(room: Room, player_id: str) -> Player:
    player = room.players.get(player_id) if isinstance(player_id, str) else None
    if player is None:
        raise ForbiddenError("Player not in this room", code="not_in_room")
    return player


def ensure_host(room: Room, actor_id: str) -> None:
    if not actor_id or actor_id != room.host_id:
        raise ForbiddenError("Only the host can perform this action", code="only_host")


def all_finished(room: Room) -> bool:
    return bool(room.players) and all(p.has_finished_voting for p in room.players.values())


def create_room(
    code: str,
    host_name: str,
    duration: object,
    now_ms: int,
    host_id: str | None = None,
) -> Room:
    name = _validate_name(host_name)
    duration_sec = normalize_duration(duration)

    hid = host_id or _new_id()
    host = Player(id=hid, name=name, joined_at=now_ms, is_host=True)
    return Room(
        code=code.upper(),
        host_id=hid,
        question_duration_sec=duration_sec,
        created_at=now_ms,
        phase=LobbyPhase(),
        players={hid: host},
        questions=[],
    )


def join_room(
    room: Room,
    name: str,
    now_ms: int,
    player_id: str | None = None,
) -> tuple[Room, Player]:
    n = _validate_name(name)
    if room.phase_name == "complete":
        raise PhaseConflictError("Room has already finished", code="room_closed")
    pid = player_id or _new_id()
    if pid in room.players:
        raise ValidationError("Player id already in use", code="duplicate_player")

    updated = copy.deepcopy(room)
    player = Player(id=pid, name=n, joined_at=now_ms, is_host=False)
    updated.players[pid] = player
    return updated, player


def start_question_phase(room: Room, actor_id: str, now_ms: int) -> Room:
    ensure_host(room, actor_id)
    if room.phase_name != "lobby":
        raise PhaseConflictError(
            f"Cannot start questions from the {room.phase_name} phase", code="wrong_phase"
        )

    updated = copy.deepcopy(room)
    updated.phase = QuestionPhase(deadline_ms=now_ms + room.question_duration_sec * 1000)
    return updated


def submit_question(room: Room, player_id: str, text: str, now_ms: int) -> Room:
    ensure_member(room, player_id)
    if not isinstance(room.phase, QuestionPhase):
        raise PhaseConflictError("Room is not accepting questions right now", code="wrong_phase")
    if now_ms > room.phase.deadline_ms:
        raise PhaseConflictError("Question window has closed", code="deadline_passed")

    t = _clean_text(text)
    if not t:
        raise ValidationError("Question cannot be empty", code="empty_question")
    if len(t) > Config.MAX_QUESTION_LENGTH:
        raise ValidationError(
            f"Question must be at most {Config.MAX_QUESTION_LENGTH} characters",
            code="question_too_long",
        )

    updated = copy.deepcopy(room)
    updated.questions.append(
        Question(id=_new_id(), text=t, author_id=player_id, created_at=now_ms)
    )
    return updated


def start_review_phase(room: Room, actor_id: str, now_ms: int) -> Room:
    ensure_host(room, actor_id)
    if room.phase_name not in ("question", "review"):
        raise PhaseConflictError(
            f"Cannot start voting from the {room.phase_name} phase", code="wrong_phase"
        )
    if not room.questions:
        raise ValidationError("Add at least one question before reviewing", code="no_questions")

    updated = copy.deepcopy(room)
    updated.phase = ReviewPhase()
    # Entering review always restarts everyone's progress.
    for p in updated.players.values():
        p.current_question_index = 0
        p.has_finished_voting = False
    return updated


def submit_vote(
    room: Room,
    player_id: str,
    target_player_id: str,
    question_index: int,
    now_ms: int,
) -> Room:
    """
    Record ``player_id``'s vote for ``target_player_id`` on one question.

    Voting is self-paced: only the voter's own progress advances. Once every
    player has finished, the room completes.
    """
    ensure_member(room, player_id)
    if not isinstance(target_player_id, str) or target_player_id not in room.players:
        raise PlayerNotFound(str(target_player_id))
    if room.phase_name != "review":
        raise PhaseConflictError("Voting is not active", code="wrong_phase")
    if (
        isinstance(question_index, bool)
        or not isinstance(question_index, int)
        or not 0 <= question_index < len(room.questions)
    ):
        raise ValidationError("Invalid question", code="invalid_question_index")

    updated = copy.deepcopy(room)
    updated.questions[question_index].votes[player_id] = target_player_id

    voter = updated.players[player_id]
    if question_index < len(updated.questions) - 1:
        voter.current_question_index = question_index + 1
    else:
        voter.has_finished_voting = True

    if all_finished(updated):
        updated.phase = CompletePhase()
    return updated


def complete_room(room: Room, actor_id: str, now_ms: int) -> Room:
    ensure_host(room, actor_id)

    updated = copy.deepcopy(room)
    updated.phase = CompletePhase()
    return updated


def end_review_early(room: Room, actor_id: str, now_ms: int) -> Room:
    ensure_host(room, actor_id)
    if room.phase_name not in ("review", "complete"):
        raise PhaseConflictError("Review phase has not started", code="wrong_phase")

    return complete_room(room, actor_id, now_ms)
