"""Parse and normalize Google Books and Open Library responses."""
import logging
import re
from typing import Dict, Any, List, Optional

from quotevault.models import Book, PLACEHOLDER_COVER_URL, UNKNOWN_AUTHOR

logger = logging.getLogger(__name__)

GOOGLE_BOOKS = "google_books"
OPEN_LIBRARY = "open_library"

_YEAR_RE = re.compile(r"(\d{4})")


def parse_year(value: Optional[str]) -> Optional[int]:
    """Extract the first four-digit year from a date string."""
    if not value or not isinstance(value, str):
        return None
    match = _YEAR_RE.search(value)
    return int(match.group(1)) if match else None


def google_cover_url(thumbnail: Optional[str]) -> str:
    """
    Upgrade a Google Books thumbnail to https and a larger zoom level.

    Args:
        thumbnail: ``imageLinks.thumbnail`` value, possibly missing

    Returns:
        Cover URL, or the placeholder when no thumbnail exists
    """
    if not thumbnail:
        return PLACEHOLDER_COVER_URL
    return thumbnail.replace("http:", "https:").replace("zoom=1", "zoom=2")


def openlibrary_cover_url(cover_id: Optional[int]) -> str:
    """Build an Open Library cover URL from a numeric cover id."""
    if not cover_id:
        return PLACEHOLDER_COVER_URL
    return f"https://covers.openlibrary.org/b/id/{cover_id}-L.jpg"


def _description_text(value: Any) -> Optional[str]:
    # Open Library returns either a plain string or {"type": ..., "value": ...}
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("value"), str):
        return value["value"]
    return None


def parse_google_volume(item: Dict[str, Any]) -> Optional[Book]:
    """
    Parse a single volume from a Google Books API response.

    Args:
        item: Single item from the ``items`` array

    Returns:
        Book object or None if the item has no id
    """
    book_id = item.get("id")
    if not book_id:
        return None

    volume_info = item.get("volumeInfo") or {}
    authors = volume_info.get("authors") or []
    image_links = volume_info.get("imageLinks") or {}

    return Book(
        id=book_id,
        title=volume_info.get("title", ""),
        author=authors[0] if authors else UNKNOWN_AUTHOR,
        cover_url=google_cover_url(image_links.get("thumbnail")),
        rating=volume_info.get("averageRating") or 0,
        publish_year=parse_year(volume_info.get("publishedDate")),
        description=volume_info.get("description"),
        page_count=volume_info.get("pageCount"),
        categories=volume_info.get("categories"),
        ratings_count=volume_info.get("ratingsCount"),
        source=GOOGLE_BOOKS,
    )


def parse_google_response(response_json: Dict[str, Any]) -> List[Book]:
    """
    Parse a full Google Books search response.

    Args:
        response_json: Complete API response JSON

    Returns:
        List of Book objects (empty if no items found)
    """
    items = response_json.get("items")
    if not isinstance(items, list):
        logger.info("No items array in Google Books response")
        return []

    books = []
    for item in items:
        book = parse_google_volume(item)
        if book:
            books.append(book)
    return books


def rank_google_trending(books: List[Book]) -> List[Book]:
    """Keep books with some engagement, most-rated first."""
    engaged = [b for b in books if b.ratings_count or b.rating > 0]
    return sorted(engaged, key=lambda b: b.ratings_count or 0, reverse=True)


def parse_openlibrary_doc(doc: Dict[str, Any]) -> Optional[Book]:
    """
    Parse a single document from an Open Library search response.

    Args:
        doc: Single entry from the ``docs`` array

    Returns:
        Book object or None if the document has no work key
    """
    key = doc.get("key")
    if not key or not isinstance(key, str):
        return None

    authors = doc.get("author_name") or []
    return Book(
        id=key.replace("/works/", ""),
        title=doc.get("title", ""),
        author=authors[0] if authors else UNKNOWN_AUTHOR,
        cover_url=openlibrary_cover_url(doc.get("cover_i")),
        rating=doc.get("ratings_average") or 0,
        publish_year=doc.get("first_publish_year"),
        description=_description_text(doc.get("description")),
        source=OPEN_LIBRARY,
    )


def parse_openlibrary_response(response_json: Dict[str, Any]) -> List[Book]:
    """Parse every document of an Open Library search response."""
    books = []
    for doc in response_json.get("docs") or []:
        book = parse_openlibrary_doc(doc)
        if book:
            books.append(book)
    return books


def rank_openlibrary_trending(docs: List[Dict[str, Any]], page_size: int) -> List[Dict[str, Any]]:
    """
    Order raw documents by edition count and keep the top ``page_size``.

    The provider offset and this cut are independent, so consecutive
    trending pages can repeat or skip works.
    """
    ranked = sorted(docs, key=lambda d: d.get("editions_count") or 0, reverse=True)
    return ranked[:page_size]


def parse_openlibrary_work(
    work_id: str,
    data: Dict[str, Any],
    author_name: Optional[str] = None
) -> Book:
    """
    Parse an Open Library ``/works/{id}.json`` document.

    Args:
        work_id: Work identifier without the ``/works/`` prefix
        data: Work JSON
        author_name: Resolved name of the first author, if any

    Returns:
        Book object
    """
    covers = data.get("covers") or []
    return Book(
        id=work_id,
        title=data.get("title", ""),
        author=author_name or UNKNOWN_AUTHOR,
        cover_url=openlibrary_cover_url(covers[0] if covers else None),
        rating=data.get("ratings_average") or 0,
        publish_year=parse_year(data.get("first_publish_date")),
        description=_description_text(data.get("description")),
        categories=[s for s in data.get("subjects") or [] if isinstance(s, str)] or None,
        source=OPEN_LIBRARY,
    )
