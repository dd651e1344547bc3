"""Database engine, session factory and storage backend selection."""

import redis
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from travelmaker.config import Settings
from travelmaker.db.file_store import JsonFileKeyValueStore
from travelmaker.db.inmemory import InMemoryKeyValueStore
from travelmaker.db.models import Base
from travelmaker.db.redis_store import RedisKeyValueStore
from travelmaker.db.repositories import KeyValueStore
from travelmaker.db.sql_repositories import SqlKeyValueStore


def create_engine_from_settings(settings: Settings) -> Engine:
    """Create SQLAlchemy engine from settings.

    Raises:
        ValueError: If DATABASE_URL is unset or empty.
    """
    if not settings.database_url:
        raise ValueError(
            "DATABASE_URL must be set to a valid connection string "
            "when storage_backend is 'sql'."
        )

    return create_engine(settings.database_url, pool_pre_ping=True, echo=False)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create sessionmaker for creating database sessions.

    Args:
        engine: SQLAlchemy engine

    Returns:
        Sessionmaker bound to the engine
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_store_from_settings(settings: Settings) -> KeyValueStore:
    """Build the configured key-value store.

    Raises:
        ValueError: Unknown backend or missing connection settings
    """
    backend = settings.storage_backend.lower()

    if backend == "memory":
        return InMemoryKeyValueStore()

    if backend == "file":
        return JsonFileKeyValueStore(settings.storage_path)

    if backend == "sql":
        engine = create_engine_from_settings(settings)
        Base.metadata.create_all(engine)
        return SqlKeyValueStore(create_session_factory(engine))

    if backend == "redis":
        if not settings.redis_url:
            raise ValueError("REDIS_URL must be set when storage_backend is 'redis'.")
        client = redis.from_url(settings.redis_url, decode_responses=True)
        return RedisKeyValueStore(client)

    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
