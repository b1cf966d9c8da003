"""Bounded, most-recent-first history of submitted search queries."""
import json
import logging
from typing import List

logger = logging.getLogger(__name__)

RECENT_SEARCHES_KEY = "recent_searches"
DEFAULT_CAPACITY = 5


class RecentSearchStore:
    """
    Recent search queries persisted through a key-value storage.

    Unreadable or missing persisted data starts an empty history; failed
    writes keep the in-memory history for the rest of the process.
    """

    def __init__(self, storage, capacity: int = DEFAULT_CAPACITY, key: str = RECENT_SEARCHES_KEY):
        """
        Args:
            storage: Object with ``get(key)`` and ``set(key, value)``
            capacity: Maximum number of remembered queries
            key: Storage key holding the JSON array
        """
        self.storage = storage
        self.capacity = capacity
        self.key = key
        self._searches: List[str] = self._load()

    def _load(self) -> List[str]:
        try:
            raw = self.storage.get(self.key)
            if raw is None:
                return []
            data = json.loads(raw)
        except Exception as e:
            logger.warning(f"Could not read recent searches, starting empty: {e}")
            return []

        if not isinstance(data, list) or not all(isinstance(s, str) for s in data):
            logger.warning("Persisted recent searches are not a list of strings, starting empty")
            return []
        return data[:self.capacity]

    def _save(self):
        try:
            self.storage.set(self.key, json.dumps(self._searches))
        except Exception as e:
            logger.warning(f"Could not persist recent searches: {e}")

    def add(self, query: str):
        """Move ``query`` to the front, dropping the oldest past capacity."""
        if not query or not query.strip():
            return
        searches = [query] + [s for s in self._searches if s != query]
        self._searches = searches[:self.capacity]
        self._save()

    def list(self) -> List[str]:
        return list(self._searches)

    def matching(self, query: str, limit: int = 2) -> List[str]:
        """Entries containing ``query`` (case-insensitive), newest first."""
        needle = query.lower()
        return [s for s in self._searches if needle in s.lower()][:limit]

    def clear(self):
        self._searches = []
        self._save()
