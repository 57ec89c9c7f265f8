"""
JSON File Local Store

All keys live in one JSON object in one file. Every write rewrites the
file atomically (temp file + rename), so a crash mid-write leaves the
previous contents intact.

TRADEOFFS:
- The whole file is rewritten on each change (fine at personal-ledger size)
- Single process only; there is no file locking
"""

import json
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from smartfinance.services.local.atomic import atomic_write_text
from smartfinance.services.local.interface import (
    CorruptStoreError,
    LocalStoreInterface,
    StoreError,
)


class JsonFileStore(LocalStoreInterface):
    """
    Local store backed by a single JSON file.

    The file is read once, lazily, and cached; writes go through the
    cache to disk.
    """

    def __init__(self, path: Union[str, Path], fsync: bool = True):
        self._path = Path(path)
        self._fsync = fsync
        self._data: Optional[dict[str, Any]] = None
        self._logger = structlog.get_logger(__name__)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data

        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._data = {}
            return self._data
        except OSError as e:
            raise StoreError(f"Failed to read local store {self._path}: {e}")

        try:
            data = json.loads(text) if text.strip() else {}
        except ValueError as e:
            raise CorruptStoreError(f"Local store {self._path} is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise CorruptStoreError(f"Local store {self._path} does not hold a JSON object")

        self._data = data
        return self._data

    def _flush(self, data: dict[str, Any]) -> None:
        try:
            atomic_write_text(
                self._path,
                json.dumps(data, ensure_ascii=False),
                fsync=self._fsync,
            )
        except OSError as e:
            self._logger.error("local_store_write_failed", path=str(self._path), error=str(e))
            raise StoreError(f"Failed to write local store {self._path}: {e}")
        self._data = data

    def get(self, key: str) -> Optional[Any]:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = dict(self._load())
        data[key] = value
        self._flush(data)

    def remove(self, key: str) -> None:
        current = self._load()
        if key not in current:
            return
        data = {k: v for k, v in current.items() if k != key}
        self._flush(data)
