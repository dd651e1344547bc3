"""SQL implementation of the key-value storage port."""

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from travelmaker.db.models import KeyValueEntry
from travelmaker.db.repositories import StorageError


class SqlKeyValueStore:
    """KeyValueStore backed by the kv_entry table."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get(self, key: str) -> str | None:
        try:
            with self._session_factory() as session:
                entry = session.get(KeyValueEntry, key)
                return entry.value if entry is not None else None
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read key {key!r}: {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            with self._session_factory() as session, session.begin():
                entry = session.get(KeyValueEntry, key)
                if entry is None:
                    session.add(KeyValueEntry(key=key, value=value))
                else:
                    entry.value = value
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to write key {key!r}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            with self._session_factory() as session, session.begin():
                session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to delete key {key!r}: {e}") from e

    def keys(self) -> list[str]:
        try:
            with self._session_factory() as session:
                return list(session.scalars(select(KeyValueEntry.key)))
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list keys: {e}") from e
