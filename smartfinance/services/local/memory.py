"""In-memory local store for tests and throwaway sessions."""

import copy
import json
from typing import Any, Optional

from smartfinance.services.local.interface import LocalStoreInterface, StoreError


class InMemoryStore(LocalStoreInterface):
    """
    Local store that keeps JSON values in a dict.

    Values are round-tripped through json on write so that anything a
    file store could not hold fails here too.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = copy.deepcopy(initial or {})
        self.fail_writes = False
        self.write_count = 0

    def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        if self.fail_writes:
            raise StoreError("Simulated write failure")
        try:
            self._data[key] = json.loads(json.dumps(value))
        except (TypeError, ValueError) as e:
            raise StoreError(f"Value for {key} is not JSON serializable: {e}")
        self.write_count += 1

    def remove(self, key: str) -> None:
        if self.fail_writes:
            raise StoreError("Simulated write failure")
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, Any]:
        """Copy of everything stored, for assertions."""
        return copy.deepcopy(self._data)
