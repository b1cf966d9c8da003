"""Key-value persistence for small client-side state."""
import json
import logging
import os
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class MemoryStorage:
    """Process-local key-value storage."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str):
        self._data[key] = value


class JsonFileStorage:
    """
    Key-value storage backed by a single JSON object on disk.

    Values are stored as strings, like a browser's localStorage.
    """

    def __init__(self, path: str):
        """
        Args:
            path: File holding the JSON object (created on first write)
        """
        self.path = path

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str):
        try:
            data = self._read_all()
        except ValueError:
            logger.warning(f"Overwriting unreadable storage file {self.path}")
            data = {}
        data[key] = value

        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)
