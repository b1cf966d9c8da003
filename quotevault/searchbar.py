"""Headless search bar: typing, key navigation and submission."""
import logging
from typing import Optional

from quotevault.client import create_provider
from quotevault.debounce import DebounceScheduler
from quotevault.parse import GOOGLE_BOOKS, OPEN_LIBRARY
from quotevault.recent import RecentSearchStore
from quotevault.search import FallbackSearchOrchestrator, SearchSession
from quotevault.storage import JsonFileStorage
from quotevault.suggestions import SuggestionAction, SuggestionAggregator

logger = logging.getLogger(__name__)


class SearchBar:
    """Wires the suggestion pipeline and the book search to one input box."""

    def __init__(
        self,
        scheduler: DebounceScheduler,
        orchestrator: FallbackSearchOrchestrator,
        recent_store: RecentSearchStore
    ):
        self.scheduler = scheduler
        self.aggregator = scheduler.aggregator
        self.orchestrator = orchestrator
        self.recent_store = recent_store
        self.query = ""
        self.is_open = False

    def set_query(self, text: str):
        self.query = text
        self.is_open = True
        self.scheduler.schedule(text)

    def handle_key(self, key: str) -> Optional[SuggestionAction]:
        """
        Apply a navigation key to the open suggestion list.

        Args:
            key: ``ArrowDown``, ``ArrowUp``, ``Enter`` or ``Escape``

        Returns:
            The activated suggestion's action for ``Enter``, otherwise None
        """
        if not self.is_open or not self.aggregator.suggestions:
            return None

        if key == "ArrowDown":
            self.aggregator.select_next()
        elif key == "ArrowUp":
            self.aggregator.select_previous()
        elif key == "Enter":
            action = self.aggregator.activate()
            if action is None:
                return None
            if action.replace_query is not None:
                self.set_query(action.replace_query)
            else:
                self.is_open = False
            return action
        elif key == "Escape":
            self.is_open = False
            self.scheduler.cancel()
            self.aggregator.clear_suggestions()
        return None

    async def submit(self) -> Optional[SearchSession]:
        """Record the query as a recent search and run the book search."""
        if not self.query.strip():
            return None
        self.recent_store.add(self.query)
        self.is_open = False
        self.scheduler.cancel()
        self.aggregator.clear_suggestions()
        logger.info(f"Searching books for {self.query!r}")
        return await self.orchestrator.perform_search(query=self.query)

    def close(self):
        """Tear down: no suggestion fetch may start after this."""
        self.is_open = False
        self.scheduler.cancel()


def source_order(config):
    """Return (primary, fallback) source names from configuration."""
    if config.PRIMARY_SOURCE == OPEN_LIBRARY:
        return OPEN_LIBRARY, GOOGLE_BOOKS
    return GOOGLE_BOOKS, OPEN_LIBRARY


def create_orchestrator(config, http_client=None, page_size: Optional[int] = None) -> FallbackSearchOrchestrator:
    primary_name, fallback_name = source_order(config)
    return FallbackSearchOrchestrator(
        create_provider(primary_name, config, http_client),
        create_provider(fallback_name, config, http_client),
        page_size=page_size or config.DEFAULT_PAGE_SIZE
    )


def create_search_bar(config, lookup, http_client=None) -> SearchBar:
    """
    Assemble a search bar from configuration.

    Args:
        config: Config instance
        lookup: Async entity lookup for suggestions
        http_client: Shared async HTTP client for the book providers

    Returns:
        SearchBar with file-backed recent searches
    """
    recent_store = RecentSearchStore(JsonFileStorage(config.RECENT_SEARCHES_FILE))
    aggregator = SuggestionAggregator(lookup, recent_store)
    scheduler = DebounceScheduler(aggregator, delay=config.DEBOUNCE_DELAY)
    return SearchBar(scheduler, create_orchestrator(config, http_client), recent_store)
