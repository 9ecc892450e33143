import json
import threading
import time
import unittest
from unittest import mock

import redis

from census.game import engine
from census.game.errors import StorageError
from census.game.models import room_to_dict
from census.game.store import InMemoryRoomStore, RedisRoomStore, create_store

T0 = 1_700_000_000_000


def _room(code="abcde"):
    return engine.create_room(code, "Alex", 60, T0, host_id="host")


class InMemoryRoomStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryRoomStore()

    def test_save_canonicalizes_code(self):
        room = _room()
        room.code = "abcde"
        saved = self.store.save(room)
        self.assertEqual(saved.code, "ABCDE")
        self.assertTrue(self.store.exists("abcde"))
        self.assertEqual(self.store.load("aBcDe").host_id, "host")

    def test_load_missing_returns_none(self):
        self.assertIsNone(self.store.load("ZZZZZ"))

    def test_loaded_rooms_are_independent_copies(self):
        self.store.save(_room())
        loaded = self.store.load("ABCDE")
        loaded.players["host"].name = "Changed"
        self.assertEqual(self.store.load("ABCDE").players["host"].name, "Alex")

    def test_save_new_refuses_taken_code(self):
        self.assertIsNotNone(self.store.save_new(_room()))
        other = engine.create_room("ABCDE", "Sam", 60, T0, host_id="other")
        self.assertIsNone(self.store.save_new(other))
        self.assertEqual(self.store.load("ABCDE").host_id, "host")

    def test_delete(self):
        self.store.save(_room())
        self.store.delete("abcde")
        self.assertIsNone(self.store.load("ABCDE"))
        self.store.delete("abcde")

    def test_room_lock_serializes_writers(self):
        self.store.save(_room())
        order = []

        def worker(name):
            with self.store.lock("abcde"):
                order.append(f"{name}-in")
                time.sleep(0.01)
                order.append(f"{name}-out")

        threads = [threading.Thread(target=worker, args=(n,)) for n in ("a", "b", "c")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for i in range(0, len(order), 2):
            self.assertEqual(order[i].split("-")[0], order[i + 1].split("-")[0])


class RedisRoomStoreTests(unittest.TestCase):
    def setUp(self):
        self.client = mock.MagicMock()
        self.store = RedisRoomStore(self.client, ttl_sec=3600)

    def test_save_writes_json_with_ttl(self):
        saved = self.store.save(_room())
        self.assertEqual(saved.code, "ABCDE")
        key, payload = self.client.set.call_args.args
        self.assertEqual(key, "census:room:ABCDE")
        self.assertEqual(json.loads(payload)["hostId"], "host")
        self.assertEqual(self.client.set.call_args.kwargs["ex"], 3600)

    def test_load_decodes_document(self):
        self.client.get.return_value = json.dumps(room_to_dict(_room()))
        room = self.store.load("abcde")
        self.client.get.assert_called_once_with("census:room:ABCDE")
        self.assertEqual(room.players["host"].name, "Alex")

    def test_load_missing_returns_none(self):
        self.client.get.return_value = None
        self.assertIsNone(self.store.load("ABCDE"))

    def test_connection_failure_is_storage_error_not_missing(self):
        self.client.get.side_effect = redis.ConnectionError("down")
        with self.assertRaises(StorageError):
            self.store.load("ABCDE")

        self.client.set.side_effect = redis.ConnectionError("down")
        with self.assertRaises(StorageError):
            self.store.save(_room())

    def test_corrupt_document_is_storage_error(self):
        self.client.get.return_value = "{not json"
        with self.assertRaises(StorageError):
            self.store.load("ABCDE")

    def test_save_new_uses_set_if_absent(self):
        self.client.set.return_value = True
        saved = self.store.save_new(_room())
        self.assertEqual(saved.code, "ABCDE")
        kwargs = self.client.set.call_args.kwargs
        self.assertTrue(kwargs["nx"])
        self.assertEqual(kwargs["ex"], 3600)

        self.client.set.return_value = None
        self.assertIsNone(self.store.save_new(_room()))

    def test_lock_acquires_and_releases(self):
        room_lock = self.client.lock.return_value
        room_lock.acquire.return_value = True
        with self.store.lock("abcde"):
            pass
        self.assertEqual(self.client.lock.call_args.args[0], "census:lock:ABCDE")
        room_lock.release.assert_called_once_with()

    def test_lock_timeout_is_storage_error(self):
        self.client.lock.return_value.acquire.return_value = False
        with self.assertRaises(StorageError):
            with self.store.lock("abcde"):
                self.fail("should not enter")


class CreateStoreTests(unittest.TestCase):
    def test_memory_by_default(self):
        self.assertIsInstance(create_store({"REDIS_URL": ""}), InMemoryRoomStore)

    def test_redis_when_url_configured(self):
        with mock.patch("census.game.store.redis.Redis.from_url") as from_url:
            store = create_store({"REDIS_URL": "redis://localhost:6379/0", "ROOM_TTL_SEC": 60})
        self.assertIsInstance(store, RedisRoomStore)
        from_url.assert_called_once_with("redis://localhost:6379/0", decode_responses=True)


if __name__ == "__main__":
    unittest.main()
