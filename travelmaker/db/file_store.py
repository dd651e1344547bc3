"""Filesystem implementation of the key-value storage port.

The whole store is one JSON object on disk, rewritten on every mutation.
"""

import json
import os
from pathlib import Path

from travelmaker.db.repositories import StorageError


class JsonFileKeyValueStore:
    """KeyValueStore backed by a single JSON document."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read store {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Store {self._path} is not a JSON object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise StorageError(f"Cannot write store {self._path}: {e}") from e

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def keys(self) -> list[str]:
        return list(self._read())
