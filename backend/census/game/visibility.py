"""
Client-safe projections of a room.

Nothing leaves the service toward a response or a broadcast without passing
through ``room_public_state``. The unfiltered ``Room`` stays inside the
engine and the store.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Any

from .models import Question, Room, room_to_dict
from .tally import voting_progress


def _hide_votes(q: Question) -> Question:
    return replace(q, votes={})


def _hide_content(q: Question) -> Question:
    return Question(id=q.id, text="", author_id="", created_at=q.created_at, votes={})


def filter_room(room: Room) -> Room:
    """Redact what the current phase must not reveal.

    - complete: everything, unchanged
    - review: questions visible, votes hidden (including from the voter)
    - lobby / question: only question ids and timestamps
    """
    if room.phase_name == "complete":
        return room

    if room.phase_name == "review":
        questions = [_hide_votes(q) for q in room.questions]
    else:
        questions = [_hide_content(q) for q in room.questions]

    players = {pid: replace(p) for pid, p in room.players.items()}
    return replace(room, players=players, questions=questions)


def room_public_state(room: Room) -> dict[str, Any]:
    payload = room_to_dict(filter_room(room))
    finished, total = voting_progress(room)
    payload["votingProgress"] = {"finished": finished, "total": total}
    return payload
