"""Participant snapshots and the activity log over a key-value store."""

import json
import logging
import os
import time
from abc import ABC, abstractmethod
from typing import Any

import redis

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
MAX_LOG_ENTRIES = 100

KEY_PARTICIPANTS = "participants"
KEY_ACTIVITY_LOG = "activity-log"


class StorageError(Exception):
    """A key-value backend could not read or write."""


class KeyValueStore(ABC):
    """Abstract string key-value store holding JSON-compatible values."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Get a value, or None if the key is absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a value."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key."""
        ...


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store for tests and ephemeral tables."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        # Round-trip through JSON so callers never share mutable state
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    """All keys kept in one JSON document on disk."""

    def __init__(self, path: str | None = None, prefix: str = "") -> None:
        """
        Args:
            path: File path. Defaults to ~/.cardtable.json
            prefix: Prepended to every key so several tables can share a file
        """
        if path is None:
            path = os.path.join(os.path.expanduser("~"), ".cardtable.json")
        self.path = path
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _read(self) -> dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Unexpected content in {self.path}")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except (OSError, TypeError) as exc:
            raise StorageError(f"Cannot write {self.path}: {exc}") from exc

    def get(self, key: str) -> Any | None:
        return self._read().get(self._key(key))

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[self._key(key)] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(self._key(key), None) is not None:
            self._write(data)


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store."""

    def __init__(self, client: "redis.Redis", prefix: str = "cardtable:") -> None:
        self._redis = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "cardtable:") -> "RedisKeyValueStore":
        return cls(redis.Redis.from_url(url), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Any | None:
        try:
            raw = self._redis.get(self._key(key))
        except redis.RedisError as exc:
            raise StorageError(str(exc)) from exc
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Corrupt value under {key}") from exc

    def set(self, key: str, value: Any) -> None:
        try:
            self._redis.set(self._key(key), json.dumps(value))
        except redis.RedisError as exc:
            raise StorageError(str(exc)) from exc

    def delete(self, key: str) -> None:
        try:
            self._redis.delete(self._key(key))
        except redis.RedisError as exc:
            raise StorageError(str(exc)) from exc


class ParticipantStore:
    """
    Versioned participant snapshots and a bounded activity log.

    Read failures and unknown schema versions fall back to defaults; write
    failures are logged. Neither ever reaches the engine: in-memory state
    stays authoritative for the session.
    """

    def __init__(self, store: KeyValueStore, max_log_entries: int = MAX_LOG_ENTRIES) -> None:
        self._store = store
        self._max_log_entries = max_log_entries

    @property
    def backend(self) -> KeyValueStore:
        return self._store

    def _read(self, key: str) -> Any | None:
        try:
            payload = self._store.get(key)
        except StorageError as exc:
            logger.warning("Failed to load %s: %s", key, exc)
            return None
        if payload is None:
            return None
        if not isinstance(payload, dict) or payload.get("version") != SCHEMA_VERSION:
            logger.warning("Ignoring %s with unsupported schema", key)
            return None
        return payload.get("data")

    def _write(self, key: str, data: Any) -> bool:
        try:
            self._store.set(key, {"version": SCHEMA_VERSION, "data": data})
        except StorageError as exc:
            logger.warning("Failed to save %s: %s", key, exc)
            return False
        return True

    def load_participants(self) -> dict[str, Any] | None:
        """
        Load the saved roster.

        Returns:
            {"participants": [...], "ante": int} or None if nothing usable
        """
        data = self._read(KEY_PARTICIPANTS)
        if not isinstance(data, dict) or not isinstance(data.get("participants"), list):
            return None
        return data

    def save_participants(self, snapshot: dict[str, Any]) -> bool:
        """Persist a roster snapshot."""
        return self._write(KEY_PARTICIPANTS, snapshot)

    def append_log(self, message: str, participant_id: str | None = None) -> bool:
        """Append an entry, keeping only the most recent ones."""
        entries = self.activity_log()
        entries.append(
            {
                "timestamp": int(time.time() * 1000),
                "message": message,
                "participant_id": participant_id,
            }
        )
        return self._write(KEY_ACTIVITY_LOG, entries[-self._max_log_entries:])

    def activity_log(self) -> list[dict[str, Any]]:
        data = self._read(KEY_ACTIVITY_LOG)
        return data if isinstance(data, list) else []

    def clear_activity_log(self) -> None:
        try:
            self._store.delete(KEY_ACTIVITY_LOG)
        except StorageError as exc:
            logger.warning("Failed to clear activity log: %s", exc)


def create_store(
    backend: str = "memory",
    path: str | None = None,
    redis_url: str | None = None,
    prefix: str = "cardtable:",
) -> ParticipantStore:
    """
    Build a ParticipantStore for a named backend.

    Args:
        backend: "memory", "file" or "redis"
        path: JSON file path for the file backend
        redis_url: Connection URL for the redis backend
        prefix: Key prefix for the file and redis backends
    """
    if backend == "memory":
        return ParticipantStore(InMemoryKeyValueStore())
    if backend == "file":
        return ParticipantStore(JsonFileKeyValueStore(path, prefix=prefix))
    if backend == "redis":
        if not redis_url:
            raise ValueError("redis backend needs a redis_url")
        return ParticipantStore(RedisKeyValueStore.from_url(redis_url, prefix=prefix))
    raise ValueError(f"Unknown persistence backend: {backend}")
