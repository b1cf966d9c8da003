"""Fallback search across two book providers with incremental pagination."""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from quotevault.client import BookProviderClient
from quotevault.models import Book, SearchParams, SearchResult

logger = logging.getLogger(__name__)

BOTH_UNAVAILABLE = "Both book services are currently unavailable. Please try again later."
LOAD_MORE_FAILED = "Failed to load more books. Please try again."


def degraded_notice(primary: str, fallback: str) -> str:
    return f"{primary} unavailable — showing results from {fallback}."


class SessionStatus(str, Enum):
    IDLE = "idle"
    SEARCHING_PRIMARY = "searching_primary"
    SEARCHING_FALLBACK = "searching_fallback"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class SearchSession:
    """Pagination and filter state for the active search surface."""
    query: str = ""
    filter: Optional[str] = "trending"
    genres: List[str] = field(default_factory=list)
    page: int = 0
    page_size: int = 24
    total_items: int = 0
    has_more: bool = False
    active_provider: Optional[str] = None
    status: SessionStatus = SessionStatus.IDLE
    books: List[Book] = field(default_factory=list)
    loading: bool = False
    degraded: bool = False
    notice: Optional[str] = None
    error: Optional[str] = None

    def params(self, page: Optional[int] = None) -> SearchParams:
        return SearchParams(
            query=self.query,
            filter=self.filter,
            genres=list(self.genres),
            page=self.page if page is None else page,
            page_size=self.page_size,
        )


class FallbackSearchOrchestrator:
    """
    Run searches against a primary provider, falling back once on failure.

    Every state change is written to ``session``. Provider errors are
    caught here and turned into ``error`` or ``notice`` text; callers
    never see them raised.
    """

    def __init__(
        self,
        primary: BookProviderClient,
        fallback: BookProviderClient,
        page_size: int = 24
    ):
        self.primary = primary
        self.fallback = fallback
        self.session = SearchSession(page_size=page_size)
        self._active: Optional[BookProviderClient] = None
        self._generation = 0

    @property
    def providers(self) -> List[BookProviderClient]:
        return [self.primary, self.fallback]

    def _apply_page(self, result: SearchResult, append: bool):
        session = self.session
        if append:
            session.books = session.books + list(result.books)
        else:
            session.books = list(result.books)
        session.total_items = result.total_items
        session.has_more = bool(result.books) and result.has_more

    async def perform_search(
        self,
        query: Optional[str] = None,
        filter: Optional[str] = None,
        genres: Optional[List[str]] = None
    ) -> SearchSession:
        """
        Start a new session and fetch its first page.

        Omitted arguments keep the current session's values.

        Args:
            query: Free-text query
            filter: ``trending``, ``latest``, ``genre``, or ``""`` for none
            genres: Subjects used by the ``genre`` filter

        Returns:
            The updated session
        """
        session = self.session
        session.query = session.query if query is None else query
        session.filter = session.filter if filter is None else filter
        session.genres = list(session.genres if genres is None else genres)

        self._generation += 1
        generation = self._generation
        session.page = 0
        session.books = []
        session.total_items = 0
        session.has_more = False
        session.degraded = False
        session.notice = None
        session.error = None
        session.loading = True
        session.status = SessionStatus.SEARCHING_PRIMARY
        self._active = None
        session.active_provider = None
        params = session.params(page=0)

        try:
            try:
                result = await self.primary.search_books(params)
                provider = self.primary
            except Exception as primary_error:
                logger.error(f"Primary source ({self.primary.display_name}) failed: {primary_error}")
                if generation != self._generation:
                    return session
                session.status = SessionStatus.SEARCHING_FALLBACK
                try:
                    logger.info(f"Falling back to {self.fallback.display_name}")
                    result = await self.fallback.search_books(params)
                    provider = self.fallback
                except Exception as fallback_error:
                    logger.error(f"Fallback source ({self.fallback.display_name}) failed: {fallback_error}")
                    if generation == self._generation:
                        session.status = SessionStatus.FAILED
                        session.books = []
                        session.total_items = 0
                        session.has_more = False
                        session.error = BOTH_UNAVAILABLE
                    return session

            if generation != self._generation:
                logger.info("Discarding results for a superseded search")
                return session

            self._active = provider
            session.active_provider = provider.name
            self._apply_page(result, append=False)
            session.status = SessionStatus.SUCCESS
            if provider is self.fallback:
                session.degraded = True
                session.notice = degraded_notice(self.primary.display_name, self.fallback.display_name)
            return session
        finally:
            if generation == self._generation:
                session.loading = False

    async def load_more(self) -> SearchSession:
        """
        Fetch the next page from the provider that served this session.

        Dropped when there is nothing more to load or a fetch is already
        running. A failure leaves the page counter and books untouched.
        """
        session = self.session
        if not session.has_more or session.loading or self._active is None:
            return session

        generation = self._generation
        provider = self._active
        next_page = session.page + 1
        session.loading = True
        session.error = None

        try:
            result = await provider.search_books(session.params(page=next_page))
        except Exception as e:
            logger.error(f"Error loading more books from {provider.display_name}: {e}")
            if generation == self._generation:
                session.error = LOAD_MORE_FAILED
            return session
        finally:
            if generation == self._generation:
                session.loading = False

        if generation != self._generation:
            logger.info("Discarding page for a superseded search")
            return session

        session.page = next_page
        self._apply_page(result, append=True)
        return session

    async def use_source(self, name: str) -> SearchSession:
        """Make the named provider primary and rerun the current search."""
        if self.primary.name != name:
            if self.fallback.name != name:
                raise ValueError(f"Unknown book source: {name}")
            self.primary, self.fallback = self.fallback, self.primary
        return await self.perform_search()
