from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any

from .models import Question, Room


@dataclass(frozen=True)
class VoteCount:
    player_id: str
    name: str
    votes: int


def tally_votes(room: Room, question: Question) -> list[VoteCount]:
    """Vote counts per target, highest first.

    Ties go to the player who joined the room first, then to the lower id.
    """
    counts = Counter(question.votes.values())

    def sort_key(pid: str) -> tuple[int, int, str]:
        player = room.players.get(pid)
        joined = player.joined_at if player else 0
        return (-counts[pid], joined, pid)

    result = []
    for pid in sorted(counts, key=sort_key):
        player = room.players.get(pid)
        result.append(VoteCount(player_id=pid, name=player.name if player else "", votes=counts[pid]))
    return result


def question_winner(room: Room, question: Question) -> VoteCount | None:
    tally = tally_votes(room, question)
    return tally[0] if tally else None


def voting_progress(room: Room) -> tuple[int, int]:
    finished = sum(1 for p in room.players.values() if p.has_finished_voting)
    return finished, len(room.players)


def room_results(room: Room) -> list[dict[str, Any]]:
    results = []
    for index, question in enumerate(room.questions):
        tally = tally_votes(room, question)
        winner = tally[0] if tally else None
        results.append(
            {
                "index": index,
                "questionId": question.id,
                "text": question.text,
                "authorId": question.author_id,
                "totalVotes": len(question.votes),
                "winnerId": winner.player_id if winner else None,
                "winnerName": winner.name if winner else None,
                "winnerVotes": winner.votes if winner else 0,
                "counts": [
                    {"playerId": c.player_id, "name": c.name, "votes": c.votes} for c in tally
                ],
            }
        )
    return results
