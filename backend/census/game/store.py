"""
Room persistence.

Stores keep rooms as JSON-safe documents, so every ``load`` hands the engine
a fresh object and nothing outside ``save`` can change the stored state.
``lock(code)`` gives callers single-writer-per-room serialization around a
load-mutate-save cycle; different rooms never contend.
"""
from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from threading import RLock
from typing import Any, Iterator, Mapping, Protocol

import redis

from .codes import normalize_code
from .errors import StorageError
from .models import Room, room_from_dict, room_to_dict

logger = logging.getLogger(__name__)


class RoomStore(Protocol):
    def load(self, code: str) -> Room | None: ...

    def save(self, room: Room) -> Room: ...

    def save_new(self, room: Room) -> Room | None: ...

    def delete(self, code: str) -> None: ...

    def exists(self, code: str) -> bool: ...

    def lock(self, code: str) -> Any: ...


class InMemoryRoomStore:
    def __init__(self) -> None:
        self._lock = RLock()
        self._rooms: dict[str, dict[str, Any]] = {}
        self._room_locks: dict[str, RLock] = {}

    def load(self, code: str) -> Room | None:
        with self._lock:
            doc = self._rooms.get(normalize_code(code))
            if doc is None:
                return None
            return room_from_dict(doc)

    def save(self, room: Room) -> Room:
        room.code = normalize_code(room.code)
        doc = room_to_dict(room)
        with self._lock:
            self._rooms[room.code] = doc
        return room_from_dict(doc)

    def save_new(self, room: Room) -> Room | None:
        """Insert a room only if its code is free; ``None`` when taken."""
        room.code = normalize_code(room.code)
        doc = room_to_dict(room)
        with self._lock:
            if room.code in self._rooms:
                return None
            self._rooms[room.code] = doc
        return room_from_dict(doc)

    def delete(self, code: str) -> None:
        key = normalize_code(code)
        with self._lock:
            self._rooms.pop(key, None)
            self._room_locks.pop(key, None)

    def exists(self, code: str) -> bool:
        with self._lock:
            return normalize_code(code) in self._rooms

    def list_codes(self) -> list[str]:
        with self._lock:
            return list(self._rooms.keys())

    @contextmanager
    def lock(self, code: str) -> Iterator[None]:
        key = normalize_code(code)
        with self._lock:
            room_lock = self._room_locks.setdefault(key, RLock())
        with room_lock:
            yield


class RedisRoomStore:
    KEY_PREFIX = "census:room:"
    LOCK_PREFIX = "census:lock:"

    def __init__(
        self,
        client: redis.Redis,
        ttl_sec: int | None = None,
        lock_timeout_sec: float = 10.0,
        lock_wait_sec: float = 5.0,
    ) -> None:
        self._client = client
        self._ttl_sec = ttl_sec
        self._lock_timeout_sec = lock_timeout_sec
        self._lock_wait_sec = lock_wait_sec

    @classmethod
    def from_url(cls, url: str, ttl_sec: int | None = None) -> "RedisRoomStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), ttl_sec=ttl_sec)

    def _key(self, code: str) -> str:
        return f"{self.KEY_PREFIX}{normalize_code(code)}"

    def load(self, code: str) -> Room | None:
        try:
            raw = self._client.get(self._key(code))
        except redis.RedisError as e:
            logger.error("Failed to load room %s: %s", code, e)
            raise StorageError("Could not load room") from e

        if raw is None:
            return None

        try:
            return room_from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Corrupt room document for %s: %s", code, e)
            raise StorageError("Could not decode room") from e

    def save(self, room: Room) -> Room:
        room.code = normalize_code(room.code)
        doc = room_to_dict(room)
        try:
            self._client.set(self._key(room.code), json.dumps(doc), ex=self._ttl_sec or None)
        except redis.RedisError as e:
            logger.error("Failed to save room %s: %s", room.code, e)
            raise StorageError("Could not persist room state") from e
        return room_from_dict(doc)

    def save_new(self, room: Room) -> Room | None:
        room.code = normalize_code(room.code)
        doc = room_to_dict(room)
        try:
            created = self._client.set(
                self._key(room.code), json.dumps(doc), nx=True, ex=self._ttl_sec or None
            )
        except redis.RedisError as e:
            logger.error("Failed to create room %s: %s", room.code, e)
            raise StorageError("Could not persist room state") from e
        if not created:
            return None
        return room_from_dict(doc)

    def delete(self, code: str) -> None:
        try:
            self._client.delete(self._key(code))
        except redis.RedisError as e:
            logger.error("Failed to delete room %s: %s", code, e)
            raise StorageError("Could not delete room") from e

    def exists(self, code: str) -> bool:
        try:
            return bool(self._client.exists(self._key(code)))
        except redis.RedisError as e:
            raise StorageError("Could not check room code") from e

    @contextmanager
    def lock(self, code: str) -> Iterator[None]:
        room_lock = self._client.lock(
            f"{self.LOCK_PREFIX}{normalize_code(code)}",
            timeout=self._lock_timeout_sec,
            blocking_timeout=self._lock_wait_sec,
        )
        try:
            acquired = room_lock.acquire()
        except redis.RedisError as e:
            raise StorageError("Could not lock room") from e
        if not acquired:
            raise StorageError(f"Timed out waiting for room {code}")

        try:
            yield
        finally:
            try:
                room_lock.release()
            except redis.RedisError as e:
                # Lock expired while held; the write already happened.
                logger.warning("Failed to release lock for room %s: %s", code, e)


def create_store(config: Mapping[str, Any]) -> RoomStore:
    url = config.get("REDIS_URL") or ""
    if url:
        logger.info("Using Redis room store")
        return RedisRoomStore.from_url(url, ttl_sec=config.get("ROOM_TTL_SEC"))
    logger.info("Using in-memory room store")
    return InMemoryRoomStore()
