"""Data models for books, search results and suggestions."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List


PLACEHOLDER_COVER_URL = "https://placehold.co/300x450/png?text=No+Cover"
UNKNOWN_AUTHOR = "Unknown Author"


@dataclass(frozen=True)
class Book:
    """Normalized book representation.
    
    Ids are only unique within the provider named by ``source``.
    """
    id: str
    title: str
    author: str
    cover_url: str
    rating: float
    publish_year: Optional[int] = None
    description: Optional[str] = None
    page_count: Optional[int] = None
    categories: Optional[List[str]] = None
    ratings_count: Optional[int] = None
    source: str = ""
    
    @property
    def categories_str(self) -> str:
        """Format categories as comma-separated string."""
        return ", ".join(self.categories) if self.categories else "None"


@dataclass
class SearchParams:
    """Parameters accepted by every book provider."""
    query: Optional[str] = None
    filter: Optional[str] = None
    genres: List[str] = field(default_factory=list)
    page: int = 0
    page_size: int = 24
    
    @property
    def offset(self) -> int:
        return self.page * self.page_size


@dataclass
class SearchResult:
    """One page of normalized books from a single provider."""
    books: List[Book]
    total_items: int
    has_more: bool


class SuggestionType(str, Enum):
    AUTHOR = "author"
    BOOK = "book"
    QUOTE = "quote"
    RECENT = "recent"
    TRENDING = "trending"


@dataclass(frozen=True)
class Suggestion:
    """A single entry in the search-as-you-type list."""
    type: SuggestionType
    text: str
    id: Optional[str] = None
    
    def __post_init__(self):
        if self.id is None and self.type not in (SuggestionType.RECENT, SuggestionType.TRENDING):
            raise ValueError(f"{self.type.value} suggestions require an id")
    
    @property
    def route(self) -> Optional[str]:
        """Navigation target for entity suggestions."""
        if self.type == SuggestionType.QUOTE:
            return f"/quote/{self.id}"
        if self.type == SuggestionType.AUTHOR:
            return f"/author/{self.id}"
        if self.type == SuggestionType.BOOK:
            return f"/search?book={self.id}"
        return None
