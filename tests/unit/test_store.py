"""Unit tests for snapshot persistence (pingbadge/gamification/store.py)"""
import json
import pytest
from unittest.mock import MagicMock

import redis
from prometheus_client import CollectorRegistry

from pingbadge.exceptions import ConfigurationError, SnapshotCorruptError, StorageError
from pingbadge.gamification.controller import GamificationController
from pingbadge.gamification.achievement_system import (
    daily_visitor_achievement,
    level_achievement,
    points_achievement,
)
from pingbadge.gamification.store import (
    FileBackend,
    GamificationStore,
    InMemoryBackend,
    RedisBackend,
    create_backend,
)
from pingbadge.models.gamification import GamificationSnapshot
from pingbadge.monitoring.prometheus_metrics import PrometheusMetrics


@pytest.fixture
def populated_snapshot(clock, today, test_user_id):
    """Snapshot with every field set away from its default"""
    return GamificationSnapshot(
        user_id=test_user_id,
        total_points=115,
        level=2,
        activities_joined_today=1,
        last_login_date=today,
        streak_days=4,
        total_activities_joined=9,
        achievements=[
            daily_visitor_achievement(5, clock()),
            points_achievement(110, "Joined activity (+10 points)", clock(), sequence=1),
            level_achievement(2, clock()),
        ],
    )


# ============================================================================
# Round-trip Tests
# ============================================================================

def test_round_trip_in_memory(store, populated_snapshot, test_user_id):
    assert store.save(test_user_id, populated_snapshot) is True

    loaded = store.load(test_user_id)

    assert loaded == populated_snapshot
    assert loaded.achievements[0].earned_at == populated_snapshot.achievements[0].earned_at
    assert loaded.achievements[0].earned_at.utcoffset() == populated_snapshot.achievements[0].earned_at.utcoffset()


def test_round_trip_fresh_snapshot(store, test_user_id):
    snapshot = GamificationSnapshot.fresh(test_user_id)
    store.save(test_user_id, snapshot)

    assert store.load(test_user_id) == snapshot


def test_round_trip_file_backend(tmp_path, populated_snapshot, test_user_id, disabled_metrics):
    store = GamificationStore(FileBackend(tmp_path), metrics=disabled_metrics)

    assert store.save(test_user_id, populated_snapshot) is True
    assert store.load(test_user_id) == populated_snapshot


def test_serialized_layout_uses_snapshot_field_names(store, backend, populated_snapshot, test_user_id):
    store.save(test_user_id, populated_snapshot)

    stored = json.loads(backend.get(f"gamification_{test_user_id}"))

    assert set(stored) == {
        "userId",
        "totalPoints",
        "level",
        "activitiesJoinedToday",
        "lastLoginDate",
        "streakDays",
        "totalActivitiesJoined",
        "achievements",
    }
    assert stored["lastLoginDate"] == "2026-10-18"
    assert stored["totalPoints"] == 115
    assert set(stored["achievements"][0]) == {
        "id", "name", "description", "icon", "points", "earnedAt", "category"
    }
    assert stored["achievements"][0]["earnedAt"].startswith("2026-10-18T09:00:00")
    assert stored["achievements"][0]["category"] == "daily"


def test_keys_are_namespaced_per_user(backend, disabled_metrics):
    store = GamificationStore(backend, key_prefix="pb_", metrics=disabled_metrics)
    store.save("alice", GamificationSnapshot.fresh("alice"))
    store.save("bob", GamificationSnapshot.fresh("bob"))

    assert store.key_for("alice") == "pb_alice"
    assert store.load("alice").user_id == "alice"
    assert store.load("bob").user_id == "bob"


# ============================================================================
# Fail-safe Load Tests
# ============================================================================

def test_load_absent_returns_none(store):
    assert store.load("nobody") is None


@pytest.mark.parametrize("raw", [
    "not json at all",
    "",
    "[]",
    "null",
    '{"totalPoints": 10}',
    '{"userId": "user-123", "totalPoints": -5}',
    '{"userId": "user-123", "totalPoints": "lots"}',
    '{"userId": "user-123", "lastLoginDate": "yesterday"}',
    '{"userId": "user-123", "achievements": [{"id": "x"}]}',
])
def test_load_corrupt_value_returns_none(store, backend, test_user_id, raw):
    """Test corrupt or schema-mismatched values are treated as absent"""
    backend.set(f"gamification_{test_user_id}", raw)

    assert store.load(test_user_id) is None


NON_UTF8_SNAPSHOT = b'{"userId": "user-123", "totalPoints": \xff\xfe}'


@pytest.fixture
def non_utf8_file_backend(tmp_path, test_user_id):
    """File backend holding a stored snapshot that is not valid UTF-8"""
    backend = FileBackend(tmp_path)
    path = backend.path_for(f"gamification_{test_user_id}")
    path.parent.mkdir(parents=True)
    path.write_bytes(NON_UTF8_SNAPSHOT)
    return backend


def test_load_non_utf8_file_returns_none(non_utf8_file_backend, disabled_metrics, test_user_id):
    """Test a file that is not valid UTF-8 is treated as absent"""
    store = GamificationStore(non_utf8_file_backend, metrics=disabled_metrics)

    with pytest.raises(SnapshotCorruptError):
        non_utf8_file_backend.get(f"gamification_{test_user_id}")
    assert store.load(test_user_id) is None


@pytest.mark.parametrize("client_get", [
    {"return_value": NON_UTF8_SNAPSHOT},
    {"side_effect": UnicodeDecodeError("utf-8", NON_UTF8_SNAPSHOT, 37, 38, "invalid start byte")},
])
def test_load_non_utf8_redis_value_returns_none(disabled_metrics, test_user_id, client_get):
    """Test undecodable redis values, raw or decoded by the client, are treated as absent"""
    client = MagicMock()
    client.get.configure_mock(**client_get)
    backend = RedisBackend(client=client)
    store = GamificationStore(backend, metrics=disabled_metrics)

    with pytest.raises(SnapshotCorruptError):
        backend.get(f"gamification_{test_user_id}")
    assert store.load(test_user_id) is None


def test_load_non_utf8_counts_as_corrupt(non_utf8_file_backend, test_user_id):
    registry = CollectorRegistry()
    store = GamificationStore(non_utf8_file_backend, metrics=PrometheusMetrics(enabled=True, registry=registry))

    assert store.load(test_user_id) is None
    assert registry.get_sample_value(
        "gamification_store_operations_total", {"operation": "load", "status": "corrupt"}
    ) == 1.0
    assert registry.get_sample_value(
        "gamification_store_operations_total", {"operation": "load", "status": "error"}
    ) is None


def test_initialize_recovers_from_non_utf8_file(non_utf8_file_backend, engine, clock, disabled_metrics, test_user_id):
    store = GamificationStore(non_utf8_file_backend, metrics=disabled_metrics)
    controller = GamificationController(engine, store, clock=clock, metrics=disabled_metrics)

    controller.initialize(test_user_id)

    assert controller.total_points == 0
    assert store.load(test_user_id) == GamificationSnapshot.fresh(test_user_id)


def test_load_ignores_unknown_fields(store, backend, test_user_id):
    backend.set(
        f"gamification_{test_user_id}",
        json.dumps({"userId": test_user_id, "totalPoints": 20, "points": 20, "streak": 3}),
    )

    loaded = store.load(test_user_id)

    assert loaded.total_points == 20
    assert loaded.streak_days == 0


def test_load_backend_failure_returns_none(disabled_metrics, test_user_id):
    backend = MagicMock()
    backend.get.side_effect = StorageError("disk unavailable")
    store = GamificationStore(backend, metrics=disabled_metrics)

    assert store.load(test_user_id) is None


# ============================================================================
# Fail-safe Save Tests
# ============================================================================

def test_save_backend_failure_returns_false(disabled_metrics, test_user_id):
    backend = MagicMock()
    backend.name = "mock"
    backend.set.side_effect = StorageError("quota exceeded")
    store = GamificationStore(backend, metrics=disabled_metrics)

    assert store.save(test_user_id, GamificationSnapshot.fresh(test_user_id)) is False


def test_save_file_backend_unwritable_returns_false(tmp_path, disabled_metrics, test_user_id):
    blocker = tmp_path / "blocked"
    blocker.write_text("a file where a directory should be")
    store = GamificationStore(FileBackend(blocker), metrics=disabled_metrics)

    assert store.save(test_user_id, GamificationSnapshot.fresh(test_user_id)) is False


# ============================================================================
# Backend Tests
# ============================================================================

def test_in_memory_backend():
    backend = InMemoryBackend()

    assert backend.get("k") is None
    backend.set("k", "v")
    backend.set("k", "v2")
    assert backend.get("k") == "v2"


def test_file_backend_encodes_keys(tmp_path):
    backend = FileBackend(tmp_path)

    backend.set("gamification_team/alice", "{}")
    backend.set("gamification_team_alice", "[]")

    assert backend.get("gamification_team/alice") == "{}"
    assert backend.get("gamification_team_alice") == "[]"
    assert backend.path_for("gamification_team/alice").parent == tmp_path / "gamification"


def test_file_backend_missing_key(tmp_path):
    assert FileBackend(tmp_path).get("missing") is None


def test_file_backend_read_error_raises_storage_error(tmp_path):
    backend = FileBackend(tmp_path)
    backend.path_for("key").mkdir(parents=True)

    with pytest.raises(StorageError) as exc_info:
        backend.get("key")

    assert exc_info.value.backend == "file"
    assert exc_info.value.key == "key"


def test_redis_backend_get_set():
    client = MagicMock()
    client.get.return_value = b'{"userId": "u"}'
    backend = RedisBackend(client=client)

    backend.set("gamification_u", "{}")

    client.set.assert_called_once_with("gamification_u", "{}")
    assert backend.get("gamification_u") == '{"userId": "u"}'


def test_redis_backend_errors_raise_storage_error():
    client = MagicMock()
    client.get.side_effect = redis.ConnectionError("refused")
    client.set.side_effect = redis.ConnectionError("refused")
    backend = RedisBackend(client=client)

    with pytest.raises(StorageError):
        backend.get("k")
    with pytest.raises(StorageError):
        backend.set("k", "v")


def test_store_over_unreachable_redis_fails_safe(disabled_metrics, test_user_id):
    client = MagicMock()
    client.get.side_effect = redis.ConnectionError("refused")
    client.set.side_effect = redis.ConnectionError("refused")
    store = GamificationStore(RedisBackend(client=client), metrics=disabled_metrics)

    assert store.load(test_user_id) is None
    assert store.save(test_user_id, GamificationSnapshot.fresh(test_user_id)) is False


def test_create_backend():
    assert isinstance(create_backend("memory"), InMemoryBackend)
    assert isinstance(create_backend("file"), FileBackend)

    with pytest.raises(ConfigurationError):
        create_backend("sqlite")


# ============================================================================
# Metrics Tests
# ============================================================================

def test_store_records_operation_metrics(backend, test_user_id):
    registry = CollectorRegistry()
    store = GamificationStore(backend, metrics=PrometheusMetrics(enabled=True, registry=registry))

    store.load(test_user_id)
    store.save(test_user_id, GamificationSnapshot.fresh(test_user_id))
    store.load(test_user_id)
    backend.set(f"gamification_{test_user_id}", "garbage")
    store.load(test_user_id)

    def sample(operation, status):
        return registry.get_sample_value(
            "gamification_store_operations_total",
            {"operation": operation, "status": status},
        )

    assert sample("load", "miss") == 1.0
    assert sample("save", "ok") == 1.0
    assert sample("load", "ok") == 1.0
    assert sample("load", "corrupt") == 1.0
