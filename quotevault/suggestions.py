"""Search-as-you-type suggestions merged from quotes, authors, books and history."""
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

from quotevault.models import Suggestion, SuggestionType
from quotevault.recent import RecentSearchStore

logger = logging.getLogger(__name__)

RECENT_LIMIT = 2
QUOTE_LIMIT = 3
AUTHOR_LIMIT = 3
BOOK_LIMIT = 3
QUOTE_TEXT_LENGTH = 60
FETCH_FAILED = "Failed to fetch suggestions"


def shorten_quote(content: str) -> str:
    if len(content) > QUOTE_TEXT_LENGTH:
        return content[:QUOTE_TEXT_LENGTH - 3] + "..."
    return content


@dataclass(frozen=True)
class SuggestionAction:
    """What activating a suggestion asks the caller to do."""
    suggestion: Suggestion
    replace_query: Optional[str] = None
    route: Optional[str] = None


class SuggestionAggregator:
    """
    Build the merged suggestion list for a query.

    The three table lookups run concurrently and are committed together;
    if any of them fails, nothing is shown and ``error`` is set. Every
    fetch carries a request token and only the newest token may change
    the visible state.
    """

    def __init__(self, lookup, recent_store: RecentSearchStore):
        """
        Args:
            lookup: Object with async ``quotes``, ``books`` and ``authors``
                methods taking ``(text, limit)`` and returning row dicts
            recent_store: Recent search history
        """
        self.lookup = lookup
        self.recent_store = recent_store
        self.suggestions: List[Suggestion] = []
        self.loading = False
        self.error: Optional[str] = None
        self.selected_index = -1
        self._latest_token = 0

    def next_token(self) -> int:
        """Issue a new request token, invalidating every earlier one."""
        self._latest_token += 1
        return self._latest_token

    def is_current(self, token: int) -> bool:
        return token == self._latest_token

    def clear_suggestions(self):
        self.suggestions = []
        self.selected_index = -1

    def reset(self):
        """Drop suggestions and any loading or error state."""
        self.clear_suggestions()
        self.loading = False
        self.error = None

    async def fetch_suggestions(self, query: str, token: Optional[int] = None):
        """
        Fetch and merge suggestions for ``query``.

        Args:
            query: Raw text typed by the user
            token: Request token from ``next_token``; a fresh one is
                issued when omitted
        """
        if token is None:
            token = self.next_token()

        if not query or not query.strip():
            if self.is_current(token):
                self.reset()
            return

        if self.is_current(token):
            self.loading = True
            self.error = None

        try:
            quotes, authors, books = await asyncio.gather(
                self.lookup.quotes(query, QUOTE_LIMIT),
                self.lookup.authors(query, AUTHOR_LIMIT),
                self.lookup.books(query, BOOK_LIMIT),
            )
        except Exception as e:
            if not self.is_current(token):
                logger.info(f"Ignoring failure of stale suggestion fetch for {query!r}")
                return
            logger.error(f"Suggestion fetch for {query!r} failed: {e}")
            self.clear_suggestions()
            self.error = str(e) or FETCH_FAILED
            self.loading = False
            return

        if not self.is_current(token):
            logger.info(f"Discarding stale suggestions for {query!r}")
            return

        recent = self.recent_store.matching(query, RECENT_LIMIT)
        merged = [Suggestion(SuggestionType.RECENT, text) for text in recent]
        merged += [
            Suggestion(SuggestionType.QUOTE, shorten_quote(row["content"]), str(row["id"]))
            for row in quotes[:QUOTE_LIMIT]
        ]
        merged += [
            Suggestion(SuggestionType.AUTHOR, row["name"], str(row["id"]))
            for row in authors[:AUTHOR_LIMIT]
        ]
        merged += [
            Suggestion(SuggestionType.BOOK, row["title"], str(row["id"]))
            for row in books[:BOOK_LIMIT]
        ]

        self.suggestions = merged
        self.selected_index = -1
        self.loading = False

    def select_next(self) -> int:
        if self.selected_index < len(self.suggestions) - 1:
            self.selected_index += 1
        return self.selected_index

    def select_previous(self) -> int:
        if self.selected_index > 0:
            self.selected_index -= 1
        return self.selected_index

    @property
    def selected(self) -> Optional[Suggestion]:
        if 0 <= self.selected_index < len(self.suggestions):
            return self.suggestions[self.selected_index]
        return None

    def activate(self) -> Optional[SuggestionAction]:
        """Resolve the selected suggestion into a query replacement or a route."""
        suggestion = self.selected
        if suggestion is None:
            return None
        if suggestion.type in (SuggestionType.RECENT, SuggestionType.TRENDING):
            return SuggestionAction(suggestion, replace_query=suggestion.text)
        return SuggestionAction(suggestion, route=suggestion.route)
