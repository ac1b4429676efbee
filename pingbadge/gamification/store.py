"""
Gamification snapshot persistence

Backends are plain key-value stores holding one JSON document per user:
- InMemoryBackend: dict, for tests and ephemeral sessions
- FileBackend: one file per key under DATA_PATH (device-local storage)
- RedisBackend: redis strings, for a shared store

GamificationStore owns serialization and fails safe: anything it cannot
read back is reported as absent, and failed writes return False instead of
raising, so the controller's in-memory snapshot stays authoritative.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote
import logging
import os

import redis
from pydantic import ValidationError

from pingbadge import config
from pingbadge.exceptions import (
    ConfigurationError,
    SnapshotCorruptError,
    StorageError,
    wrap_external_exception,
)
from pingbadge.models.gamification import GamificationSnapshot
from pingbadge.monitoring.prometheus_metrics import PrometheusMetrics, metrics as default_metrics

logger = logging.getLogger(__name__)


class KeyValueBackend(ABC):
    """Minimal string key-value storage. Raises StorageError on failure."""

    name = "base"

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent"""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store `value` under `key`, replacing any previous value"""


class InMemoryBackend(KeyValueBackend):
    """Temporary in-memory store (not persisted)"""

    name = "memory"

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class FileBackend(KeyValueBackend):
    """One JSON document per key under a directory"""

    name = "file"

    def __init__(self, data_path: Path = config.DATA_PATH):
        self.data_path = Path(data_path) / "gamification"

    def path_for(self, key: str) -> Path:
        # Percent-encoding keeps arbitrary user ids filesystem safe and distinct
        return self.data_path / f"{quote(key, safe='')}.json"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise wrap_external_exception(e, operation="file_read", key=key, backend=self.name) from e

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.data_path.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise wrap_external_exception(e, operation="file_write", key=key, backend=self.name) from e


class RedisBackend(KeyValueBackend):
    """Synchronous redis string storage"""

    name = "redis"

    def __init__(self, client: Optional[redis.Redis] = None, redis_url: str = config.REDIS_URL):
        self.client = client or redis.Redis.from_url(redis_url, decode_responses=True)

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.client.get(key)
            if isinstance(value, bytes):
                value = value.decode("utf-8")
        except (redis.RedisError, UnicodeDecodeError) as e:
            raise wrap_external_exception(e, operation="redis_get", key=key, backend=self.name) from e
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self.client.set(key, value)
        except redis.RedisError as e:
            raise wrap_external_exception(e, operation="redis_set", key=key, backend=self.name) from e


class GamificationStore:
    """
    Load and save per-user gamification snapshots.

    Keys are namespaced as f"{key_prefix}{user_id}"; values are the snapshot
    serialized as camelCase JSON.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        key_prefix: str = config.GAMIFICATION_STORAGE_PREFIX,
        metrics: Optional[PrometheusMetrics] = None
    ):
        self.backend = backend
        self.key_prefix = key_prefix
        self.metrics = metrics or default_metrics

    def key_for(self, user_id: str) -> str:
        return f"{self.key_prefix}{user_id}"

    def load(self, user_id: str) -> Optional[GamificationSnapshot]:
        """
        Load a user's snapshot

        Returns:
            The stored snapshot, or None if absent, unreadable or corrupt
        """
        key = self.key_for(user_id)

        try:
            raw = self.backend.get(key)
            if raw is None:
                self.metrics.record_store_operation("load", "miss")
                return None
            snapshot = self._decode(raw, user_id, key)
        except SnapshotCorruptError as e:
            logger.warning(f"Discarding corrupt gamification data for user {user_id} ({key}): {e.message}")
            self.metrics.record_store_operation("load", "corrupt")
            return None
        except StorageError as e:
            logger.warning(f"Could not read gamification data for user {user_id}, treating as absent: {e}")
            self.metrics.record_store_operation("load", "error")
            return None

        self.metrics.record_store_operation("load", "ok")
        return snapshot

    def _decode(self, raw: str, user_id: str, key: str) -> GamificationSnapshot:
        try:
            return GamificationSnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise wrap_external_exception(
                e,
                operation="decode_snapshot",
                user_id=user_id,
                key=key,
                backend=self.backend.name
            ) from e

    def save(self, user_id: str, snapshot: GamificationSnapshot) -> bool:
        """
        Persist a user's snapshot

        Returns:
            True if the write succeeded, False otherwise (never raises)
        """
        key = self.key_for(user_id)
        payload = snapshot.model_dump_json(by_alias=True)

        try:
            self.backend.set(key, payload)
        except StorageError as e:
            logger.warning(f"Gamification data for user {user_id} not persisted: {e}")
            self.metrics.record_store_operation("save", "error")
            return False

        logger.debug(f"Saved gamification data for user {user_id} to {self.backend.name} backend")
        self.metrics.record_store_operation("save", "ok")
        return True


def create_backend(backend_name: Optional[str] = None) -> KeyValueBackend:
    """Build the configured key-value backend"""
    backend_name = (backend_name or config.GAMIFICATION_STORAGE_BACKEND).lower()

    if backend_name == "memory":
        logger.warning(
            "InMemoryBackend selected - gamification data is NOT persisted across restarts"
        )
        return InMemoryBackend()
    if backend_name == "file":
        return FileBackend(config.DATA_PATH)
    if backend_name == "redis":
        return RedisBackend(redis_url=config.REDIS_URL)

    raise ConfigurationError(
        f"Unknown storage backend {backend_name!r}",
        config_key="GAMIFICATION_STORAGE_BACKEND"
    )


def create_store(backend_name: Optional[str] = None) -> GamificationStore:
    """Build a GamificationStore over the configured backend"""
    return GamificationStore(create_backend(backend_name), key_prefix=config.GAMIFICATION_STORAGE_PREFIX)
