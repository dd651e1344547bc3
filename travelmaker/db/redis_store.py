"""Redis implementation of the key-value storage port."""

import redis

from travelmaker.db.repositories import StorageError


class RedisKeyValueStore:
    """KeyValueStore backed by Redis strings under a namespace prefix."""

    def __init__(self, redis_client: redis.Redis, namespace: str = "travelmaker:") -> None:
        """Initialize store.

        Args:
            redis_client: Redis client created with decode_responses=True
            namespace: Prefix applied to every key
        """
        self._redis = redis_client
        self._namespace = namespace

    def get(self, key: str) -> str | None:
        try:
            value = self._redis.get(self._namespace + key)
        except redis.RedisError as e:
            raise StorageError(f"Failed to read key {key!r}: {e}") from e
        return value if value is None or isinstance(value, str) else value.decode("utf-8")

    def set(self, key: str, value: str) -> None:
        try:
            self._redis.set(self._namespace + key, value)
        except redis.RedisError as e:
            raise StorageError(f"Failed to write key {key!r}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._redis.delete(self._namespace + key)
        except redis.RedisError as e:
            raise StorageError(f"Failed to delete key {key!r}: {e}") from e

    def keys(self) -> list[str]:
        try:
            raw_keys = list(self._redis.scan_iter(match=f"{self._namespace}*"))
        except redis.RedisError as e:
            raise StorageError(f"Failed to list keys: {e}") from e
        keys = [k if isinstance(k, str) else k.decode("utf-8") for k in raw_keys]
        return [k[len(self._namespace) :] for k in keys]
