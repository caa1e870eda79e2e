"""
In-process key-value store.
"""

from typing import Dict, Optional

from ...interfaces.key_value_store import KeyValueStoreInterface


class MemoryStore(KeyValueStoreInterface):
    """Dictionary-backed store; contents are lost with the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())
