from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Literal, Union


PhaseName = Literal["lobby", "question", "review", "complete"]


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class LobbyPhase:
    name: PhaseName = "lobby"


@dataclass(frozen=True)
class QuestionPhase:
    deadline_ms: int
    name: PhaseName = "question"


@dataclass(frozen=True)
class ReviewPhase:
    name: PhaseName = "review"


@dataclass(frozen=True)
class CompletePhase:
    name: PhaseName = "complete"


Phase = Union[LobbyPhase, QuestionPhase, ReviewPhase, CompletePhase]


@dataclass
class Player:
    id: str
    name: str
    joined_at: int
    is_host: bool = False
    current_question_index: int = 0
    has_finished_voting: bool = False


@dataclass
class Question:
    id: str
    text: str
    author_id: str
    created_at: int
    # voter id -> target player id
    votes: dict[str, str] = field(default_factory=dict)


@dataclass
class Room:
    code: str
    host_id: str
    question_duration_sec: int
    created_at: int
    phase: Phase = field(default_factory=LobbyPhase)
    players: dict[str, Player] = field(default_factory=dict)
    questions: list[Question] = field(default_factory=list)

    @property
    def phase_name(self) -> PhaseName:
        return self.phase.name

    @property
    def question_deadline_ms(self) -> int | None:
        if isinstance(self.phase, QuestionPhase):
            return self.phase.deadline_ms
        return None

    @property
    def host(self) -> Player | None:
        return self.players.get(self.host_id)


def players_in_join_order(room: Room) -> list[Player]:
    return sorted(room.players.values(), key=lambda p: (p.joined_at, p.id))


def phase_from_name(name: str, deadline_ms: int | None = None) -> Phase:
    if name == "lobby":
        return LobbyPhase()
    if name == "question":
        if deadline_ms is None:
            raise ValueError("question phase requires a deadline")
        return QuestionPhase(deadline_ms=int(deadline_ms))
    if name == "review":
        return ReviewPhase()
    if name == "complete":
        return CompletePhase()
    raise ValueError(f"unknown phase: {name!r}")


def player_to_dict(player: Player) -> dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "joinedAt": player.joined_at,
        "isHost": player.is_host,
        "currentQuestionIndex": player.current_question_index,
        "hasFinishedVoting": player.has_finished_voting,
    }


def question_to_dict(question: Question) -> dict[str, Any]:
    return {
        "id": question.id,
        "text": question.text,
        "authorId": question.author_id,
        "createdAt": question.created_at,
        "votes": dict(question.votes),
    }


def room_to_dict(room: Room) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "code": room.code,
        "hostId": room.host_id,
        "phase": room.phase_name,
        "questionDurationSeconds": room.question_duration_sec,
        "createdAt": room.created_at,
        "players": {p.id: player_to_dict(p) for p in players_in_join_order(room)},
        "questions": [question_to_dict(q) for q in room.questions],
    }
    if room.question_deadline_ms is not None:
        payload["questionDeadline"] = room.question_deadline_ms
    return payload


def room_from_dict(data: dict[str, Any]) -> Room:
    players = {}
    for pid, p in (data.get("players") or {}).items():
        players[pid] = Player(
            id=p["id"],
            name=p["name"],
            joined_at=int(p["joinedAt"]),
            is_host=bool(p.get("isHost", False)),
            current_question_index=int(p.get("currentQuestionIndex", 0)),
            has_finished_voting=bool(p.get("hasFinishedVoting", False)),
        )

    questions = [
        Question(
            id=q["id"],
            text=q["text"],
            author_id=q["authorId"],
            created_at=int(q["createdAt"]),
            votes=dict(q.get("votes") or {}),
        )
        for q in (data.get("questions") or [])
    ]

    return Room(
        code=data["code"],
        host_id=data["hostId"],
        question_duration_sec=int(data["questionDurationSeconds"]),
        created_at=int(data["createdAt"]),
        phase=phase_from_name(data["phase"], data.get("questionDeadline")),
        players=players,
        questions=questions,
    )
