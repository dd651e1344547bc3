"""Tests for file, SQL and Redis key-value stores and the backend factory."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import redis
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from travelmaker.config import Settings
from travelmaker.db.engine import create_session_factory, create_store_from_settings
from travelmaker.db.file_store import JsonFileKeyValueStore
from travelmaker.db.inmemory import InMemoryKeyValueStore
from travelmaker.db.models import Base
from travelmaker.db.redis_store import RedisKeyValueStore
from travelmaker.db.repositories import StorageError, TripRepository
from travelmaker.db.sql_repositories import SqlKeyValueStore
from travelmaker.models.trip import Trip


@pytest.fixture
def sql_store() -> SqlKeyValueStore:
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    return SqlKeyValueStore(create_session_factory(engine))


class FakeRedis:
    """Minimal dict-backed stand-in for a decode_responses Redis client."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def scan_iter(self, match: str) -> list[str]:
        prefix = match.rstrip("*")
        return [k for k in self.data if k.startswith(prefix)]


def _exercise(store: InMemoryKeyValueStore | JsonFileKeyValueStore | SqlKeyValueStore) -> None:
    assert store.get("missing") is None
    store.set("a", "1")
    store.set("b", "2")
    store.set("a", "3")
    assert store.get("a") == "3"
    assert sorted(store.keys()) == ["a", "b"]
    store.remove("a")
    store.remove("never-there")
    assert store.keys() == ["b"]


def test_in_memory_store() -> None:
    _exercise(InMemoryKeyValueStore())


def test_file_store(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "store.json"

    _exercise(JsonFileKeyValueStore(path))

    assert path.exists()
    assert JsonFileKeyValueStore(path).get("b") == "2"


def test_file_store_corrupt_file_raises_storage_error(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("not json", encoding="utf-8")

    with pytest.raises(StorageError):
        JsonFileKeyValueStore(path).get("a")


def test_repository_on_corrupt_file_store_lists_nothing(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("[1, 2]", encoding="utf-8")

    assert TripRepository(JsonFileKeyValueStore(path)).list_all() == []


def test_sql_store(sql_store: SqlKeyValueStore) -> None:
    _exercise(sql_store)


def test_repository_over_sql_store(sql_store: SqlKeyValueStore, sample_trip: Trip) -> None:
    repo = TripRepository(sql_store)

    assert repo.upsert(sample_trip) is True
    assert repo.get(sample_trip.id) == sample_trip


def test_redis_store_namespaces_keys() -> None:
    fake = FakeRedis()
    store = RedisKeyValueStore(fake, namespace="tm:")  # type: ignore[arg-type]

    store.set("a", "1")
    fake.data["other:x"] = "ignored"

    assert fake.data["tm:a"] == "1"
    assert store.get("a") == "1"
    assert store.keys() == ["a"]
    store.remove("a")
    assert store.keys() == []


def test_redis_errors_become_storage_errors() -> None:
    client = MagicMock()
    client.get.side_effect = redis.ConnectionError("refused")
    store = RedisKeyValueStore(client)

    with pytest.raises(StorageError, match="refused"):
        store.get("a")


def test_factory_builds_configured_backend(tmp_path: Path) -> None:
    memory = create_store_from_settings(Settings(_env_file=None, storage_backend="memory"))
    file_store = create_store_from_settings(
        Settings(_env_file=None, storage_backend="file", storage_path=str(tmp_path / "s.json"))
    )
    sql = create_store_from_settings(
        Settings(_env_file=None, storage_backend="sql", database_url="sqlite://")
    )

    assert isinstance(memory, InMemoryKeyValueStore)
    assert isinstance(file_store, JsonFileKeyValueStore)
    assert isinstance(sql, SqlKeyValueStore)


def test_factory_rejects_bad_configuration() -> None:
    with pytest.raises(ValueError, match="Unknown storage backend"):
        create_store_from_settings(Settings(_env_file=None, storage_backend="floppy"))
    with pytest.raises(ValueError, match="DATABASE_URL"):
        create_store_from_settings(
            Settings(_env_file=None, storage_backend="sql", database_url=None)
        )
    with pytest.raises(ValueError, match="REDIS_URL"):
        create_store_from_settings(
            Settings(_env_file=None, storage_backend="redis", redis_url=None)
        )
