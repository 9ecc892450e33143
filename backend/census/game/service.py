from __future__ import annotations

import logging
from typing import Any, Callable

from ..config import Config
from ..realtime.broadcaster import Broadcaster, NullBroadcaster
from . import engine
from .codes import allocate_room_code, normalize_code
from .errors import AllocationExhaustedError, PhaseConflictError, RoomNotFound
from .models import Room, now_ms
from .store import RoomStore
from .tally import room_results
from .visibility import room_public_state

logger = logging.getLogger(__name__)


class RoomService:
    """
    Runs one engine operation per call against the store.

    Every mutation follows the same cycle under the room's lock: read the
    clock once, load, apply the engine function, save, publish the filtered
    state. Store failures propagate; publish failures are logged only.
    """

    def __init__(
        self,
        store: RoomStore,
        broadcaster: Broadcaster | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.store = store
        self.broadcaster = broadcaster or NullBroadcaster()
        self._clock = clock

    def _load(self, code: str) -> Room:
        room = self.store.load(code)
        if room is None:
            raise RoomNotFound(code)
        return room

    def _publish(self, room: Room) -> None:
        try:
            self.broadcaster.publish(room.code, room_public_state(room))
        except Exception:
            logger.exception("Broadcast failed for room %s", room.code)

    def _mutate(self, code: str, apply: Callable[[Room, int], Room]) -> Room:
        key = normalize_code(code)
        now = self._clock()
        with self.store.lock(key):
            room = self._load(key)
            saved = self.store.save(apply(room, now))
            self._publish(saved)
        return saved

    def create_room(self, host_name: str, duration: Any = None) -> tuple[Room, str]:
        now = self._clock()
        attempts = Config.ROOM_CODE_ATTEMPTS
        for attempt in range(1, attempts + 1):
            code = allocate_room_code(self.store.exists)
            room = engine.create_room(code, host_name, duration, now)
            with self.store.lock(code):
                # save_new is the claim; the exists() check above can race.
                saved = self.store.save_new(room)
                if saved is None:
                    logger.warning(
                        "Room code %s claimed concurrently (attempt %d/%d)", code, attempt, attempts
                    )
                    continue
                self._publish(saved)
            logger.info("Created room %s for host %s", saved.code, saved.host_id)
            return saved, saved.host_id

        raise AllocationExhaustedError(
            f"Unable to claim a unique room code after {attempts} attempts"
        )

    def join_room(self, code: str, name: str) -> tuple[Room, str]:
        joined: dict[str, str] = {}

        def apply(room: Room, now: int) -> Room:
            updated, player = engine.join_room(room, name, now)
            joined["id"] = player.id
            return updated

        saved = self._mutate(code, apply)
        logger.info("Player %s joined room %s", joined["id"], saved.code)
        return saved, joined["id"]

    def get_room(self, code: str) -> Room:
        return self._load(normalize_code(code))

    def start_question_phase(self, code: str, actor_id: str) -> Room:
        saved = self._mutate(
            code, lambda room, now: engine.start_question_phase(room, actor_id, now)
        )
        logger.info(
            "Room %s collecting questions until %s", saved.code, saved.question_deadline_ms
        )
        return saved

    def submit_question(self, code: str, player_id: str, text: str) -> Room:
        saved = self._mutate(
            code, lambda room, now: engine.submit_question(room, player_id, text, now)
        )
        logger.info(
            "Player %s submitted question #%d in room %s",
            player_id,
            len(saved.questions) - 1,
            saved.code,
        )
        return saved

    def start_review_phase(self, code: str, actor_id: str) -> Room:
        saved = self._mutate(
            code, lambda room, now: engine.start_review_phase(room, actor_id, now)
        )
        logger.info(
            "Room %s voting on %d questions with %d players",
            saved.code,
            len(saved.questions),
            len(saved.players),
        )
        return saved

    def submit_vote(
        self, code: str, player_id: str, target_player_id: str, question_index: int
    ) -> Room:
        saved = self._mutate(
            code,
            lambda room, now: engine.submit_vote(
                room, player_id, target_player_id, question_index, now
            ),
        )
        logger.info(
            "Player %s voted on question %s in room %s", player_id, question_index, saved.code
        )
        if saved.phase_name == "complete":
            logger.info("Room %s complete: every player finished voting", saved.code)
        return saved

    def end_review_early(self, code: str, actor_id: str) -> Room:
        saved = self._mutate(
            code, lambda room, now: engine.end_review_early(room, actor_id, now)
        )
        logger.info("Host ended review early in room %s", saved.code)
        return saved

    def complete_room(self, code: str, actor_id: str) -> Room:
        saved = self._mutate(code, lambda room, now: engine.complete_room(room, actor_id, now))
        logger.info("Host completed room %s", saved.code)
        return saved

    def delete_room(self, code: str, actor_id: str) -> None:
        key = normalize_code(code)
        with self.store.lock(key):
            room = self._load(key)
            engine.ensure_host(room, actor_id)
            self.store.delete(key)
            try:
                self.broadcaster.publish_deleted(key)
            except Exception:
                logger.exception("Broadcast failed for deleted room %s", key)
        logger.info("Deleted room %s", key)

    def get_results(self, code: str) -> list[dict[str, Any]]:
        room = self.get_room(code)
        if room.phase_name != "complete":
            raise PhaseConflictError(
                "Results are available once voting is complete", code="results_hidden"
            )
        return room_results(room)
