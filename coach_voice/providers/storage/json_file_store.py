"""
Key-value store persisted to a single JSON file.
"""

import json
import os
from pathlib import Path
from typing import Dict, Optional, Union

from ...interfaces.key_value_store import KeyValueStoreInterface
from ...utils.logging_config import get_logger


class JSONFileStore(KeyValueStoreInterface):
    """
    Durable store for small amounts of state.

    The whole file is rewritten on every change. Writes go to a temporary
    file first and are moved into place, so a crash never leaves half a file.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._data: Optional[Dict[str, str]] = None
        self._logger = get_logger("storage")

    def _load(self) -> Dict[str, str]:
        if self._data is not None:
            return self._data
        self._data = {}
        if self.path.exists():
            try:
                with open(self.path, "r") as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    self._data = {str(k): str(v) for k, v in loaded.items()}
                else:
                    self._logger.warning(f"Ignoring non-object store file: {self.path}")
            except (OSError, ValueError) as e:
                self._logger.warning(f"Failed to load store file {self.path}: {e}")
        return self._data

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(self._data, f, indent=2)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._save()

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save()
