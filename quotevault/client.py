"""Async HTTP clients for the Google Books and Open Library search APIs."""
import asyncio
import logging
from datetime import date
from typing import Optional, Dict, Any, List

import httpx

from quotevault.models import Book, SearchParams, SearchResult
from quotevault.parse import (
    GOOGLE_BOOKS,
    OPEN_LIBRARY,
    parse_google_response,
    parse_google_volume,
    parse_openlibrary_response,
    parse_openlibrary_work,
    rank_google_trending,
    rank_openlibrary_trending,
)

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """A book provider call failed (transport, status or body)."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


def genre_clause(genres: List[str]) -> str:
    """Join genres into an OR-ed ``subject:`` clause."""
    return " OR ".join(f"subject:{genre}" for genre in genres)


class BookProviderClient:
    """Base client with a fixed-delay retry for network-level failures."""

    name = ""
    display_name = ""

    def __init__(
        self,
        timeout: int = 10,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize provider client.

        Args:
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts on transport errors
            retry_delay: Fixed delay between attempts in seconds
            client: Shared async HTTP client (one is created if omitted)
        """
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def search_books(self, params: SearchParams) -> SearchResult:
        raise NotImplementedError

    async def get_book(self, book_id: str) -> Book:
        raise NotImplementedError

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET a URL and decode its JSON body.

        Only transport errors are retried. A non-2xx status or an
        unparsable body fails immediately.

        Args:
            url: Request URL
            params: Query parameters

        Returns:
            Decoded JSON object

        Raises:
            ProviderError: on any failure
        """
        response = None
        for attempt in range(self.max_retries):
            try:
                logger.info(f"{self.display_name} request attempt {attempt + 1}/{self.max_retries}: {url}")
                response = await self.client.get(url, params=params)
                break
            except httpx.TransportError as e:
                logger.warning(f"{self.display_name} transport error on attempt {attempt + 1}: {e}")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay)
                    continue
                raise ProviderError(
                    self.name,
                    f"Failed after {self.max_retries} attempts: {e}"
                ) from e

        if not response.is_success:
            logger.error(f"{self.display_name} returned status {response.status_code}")
            raise ProviderError(
                self.name,
                f"{self.display_name} returned HTTP {response.status_code}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"{self.display_name} returned an invalid JSON body: {e}")
            raise ProviderError(self.name, "Invalid API response format") from e

        if not isinstance(data, dict):
            raise ProviderError(self.name, "Invalid API response format")
        return data

    async def close(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


class GoogleBooksClient(BookProviderClient):
    """Google Books volumes search (startIndex pagination)."""

    BASE_URL = "https://www.googleapis.com/books/v1/volumes"
    MAX_PAGE_SIZE = 40

    name = GOOGLE_BOOKS
    display_name = "Google Books"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key

    def build_params(self, params: SearchParams) -> Dict[str, Any]:
        """Translate search parameters into the Google Books query dialect."""
        page_size = min(params.page_size, self.MAX_PAGE_SIZE)
        query: Dict[str, Any] = {
            "key": self.api_key,
            "maxResults": page_size,
            "startIndex": params.page * page_size,
            "printType": "books",
            "projection": "full",
        }

        if params.filter == "trending":
            query["q"] = params.query or "subject:fiction"
            query["orderBy"] = "relevance"
            query["filter"] = "paid-ebooks"
            query["langRestrict"] = "en"
        elif params.filter == "latest":
            query["q"] = params.query or "*"
            query["orderBy"] = "newest"
        elif params.filter == "genre" and params.genres:
            genres = genre_clause(params.genres)
            query["q"] = f"{params.query} ({genres})" if params.query else genres
        else:
            query["q"] = params.query or "*"

        return query

    async def search_books(self, params: SearchParams) -> SearchResult:
        """
        Search for books.

        Args:
            params: Query, filter, genres and page

        Returns:
            One page of normalized books
        """
        if not self.api_key:
            raise ProviderError(self.name, "Google Books API key is not configured")

        query = self.build_params(params)
        data = await self._get_json(self.BASE_URL, query)

        items = data.get("items") if isinstance(data.get("items"), list) else []
        total_items = data.get("totalItems") or 0
        books = parse_google_response(data)
        if params.filter == "trending":
            books = rank_google_trending(books)

        has_more = bool(books) and query["startIndex"] + len(items) < total_items
        logger.info(f"Google Books returned {len(books)} books (total {total_items})")
        return SearchResult(books=books, total_items=total_items, has_more=has_more)

    async def get_book(self, book_id: str) -> Book:
        """Fetch a single volume by id."""
        params = {"key": self.api_key} if self.api_key else None
        data = await self._get_json(f"{self.BASE_URL}/{book_id}", params)
        book = parse_google_volume(data)
        if book is None:
            raise ProviderError(self.name, f"Volume {book_id} has no id")
        return book


class OpenLibraryClient(BookProviderClient):
    """Open Library search (offset pagination)."""

    BASE_URL = "https://openlibrary.org"
    FIELDS = "key,title,author_name,first_publish_year,cover_i,ratings_average,description,editions_count"

    name = OPEN_LIBRARY
    display_name = "Open Library"

    def build_query(self, params: SearchParams) -> str:
        """Build the Open Library ``q`` expression."""
        parts = []
        if params.query:
            parts.append(params.query)

        if params.filter == "latest":
            parts.append(f"publish_year:[{date.today().year - 2} TO *]")
        elif params.filter == "trending":
            parts.append("has_fulltext:true")
        elif params.filter == "genre" and params.genres:
            parts.append(f"({genre_clause(params.genres)})")

        return " ".join(parts) or "*:*"

    async def search_books(self, params: SearchParams) -> SearchResult:
        """
        Search for books.

        Trending over-fetches two pages worth of rows, ranks them by
        edition count and keeps one page.

        Args:
            params: Query, filter, genres and page

        Returns:
            One page of normalized books
        """
        trending = params.filter == "trending"
        limit = params.page_size * 2 if trending else params.page_size
        query = {
            "q": self.build_query(params),
            "fields": self.FIELDS,
            "limit": limit,
            "offset": params.offset,
        }
        data = await self._get_json(f"{self.BASE_URL}/search.json", query)

        docs = data.get("docs") or []
        total_items = data.get("numFound") or 0
        if trending:
            docs_for_page = rank_openlibrary_trending(docs, params.page_size)
        else:
            docs_for_page = docs
        books = parse_openlibrary_response({"docs": docs_for_page})

        has_more = bool(books) and params.offset + len(docs) < total_items
        logger.info(f"Open Library returned {len(books)} books (total {total_items})")
        return SearchResult(books=books, total_items=total_items, has_more=has_more)

    async def get_author_name(self, author_key: str) -> Optional[str]:
        """Resolve ``/authors/OL..A`` to a display name."""
        key = author_key.strip("/").split("/")[-1]
        if not key:
            return None
        data = await self._get_json(f"{self.BASE_URL}/authors/{key}.json")
        name = data.get("name")
        return name if isinstance(name, str) else None

    async def get_book(self, book_id: str) -> Book:
        """Fetch a single work, resolving its first author."""
        work_id = book_id.split("/")[-1]
        data = await self._get_json(f"{self.BASE_URL}/works/{work_id}.json")

        author_name = None
        for entry in data.get("authors") or []:
            author = entry.get("author") if isinstance(entry, dict) else None
            if isinstance(author, dict) and author.get("key"):
                author_name = await self.get_author_name(author["key"])
                break

        return parse_openlibrary_work(work_id, data, author_name)


def create_provider(source: str, config, client: Optional[httpx.AsyncClient] = None) -> BookProviderClient:
    """
    Build a provider client from configuration.

    Args:
        source: ``google_books`` or ``open_library``
        config: Config instance
        client: Shared async HTTP client

    Returns:
        Provider client
    """
    common = {
        "timeout": config.DEFAULT_TIMEOUT,
        "max_retries": config.DEFAULT_MAX_RETRIES,
        "retry_delay": config.RETRY_DELAY,
        "client": client,
    }
    if source == GOOGLE_BOOKS:
        return GoogleBooksClient(api_key=config.GOOGLE_BOOKS_API_KEY, **common)
    if source == OPEN_LIBRARY:
        return OpenLibraryClient(**common)
    raise ValueError(f"Unknown book source: {source}")
