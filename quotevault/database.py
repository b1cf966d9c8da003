"""Database layer for quote, book and author lookups."""
import asyncio
import psycopg2
from psycopg2 import pool
from typing import List, Dict, Any
import logging

logger = logging.getLogger(__name__)


def like_pattern(text: str) -> str:
    """Wrap text for a substring ILIKE match, escaping wildcards."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class Database:
    """PostgreSQL database with connection pooling."""

    def __init__(self, connection_string: str, min_conn: int = 1, max_conn: int = 10, connection_pool=None):
        """
        Initialize database connection pool.

        Args:
            connection_string: PostgreSQL connection string
            min_conn: Minimum connections in pool
            max_conn: Maximum connections in pool
            connection_pool: Existing pool to use instead of creating one
        """
        self.connection_pool = connection_pool or psycopg2.pool.ThreadedConnectionPool(
            min_conn,
            max_conn,
            connection_string
        )

        if self.connection_pool:
            logger.info("Database connection pool created successfully")
        else:
            raise Exception("Failed to create connection pool")

    def _fetch_rows(self, statement: str, text: str, limit: int) -> List[Dict[str, Any]]:
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute(statement, (like_pattern(text), limit))
                columns = [col[0] for col in cur.description]
                return [dict(zip(columns, row)) for row in cur.fetchall()]
        finally:
            self.connection_pool.putconn(conn)

    def search_quotes(self, text: str, limit: int = 3) -> List[Dict[str, Any]]:
        """
        Find quotes whose content contains the text (case-insensitive).

        Args:
            text: Substring to match
            limit: Maximum rows

        Returns:
            Rows with ``id`` and ``content``
        """
        return self._fetch_rows("""
            SELECT id, content
            FROM quotes
            WHERE content ILIKE %s ESCAPE '\\'
            LIMIT %s
        """, text, limit)

    def search_books(self, text: str, limit: int = 3) -> List[Dict[str, Any]]:
        """Find books whose title contains the text. Rows have ``id`` and ``title``."""
        return self._fetch_rows("""
            SELECT id, title
            FROM books
            WHERE title ILIKE %s ESCAPE '\\'
            LIMIT %s
        """, text, limit)

    def search_authors(self, text: str, limit: int = 3) -> List[Dict[str, Any]]:
        """Find authors whose name contains the text. Rows have ``id`` and ``name``."""
        return self._fetch_rows("""
            SELECT id, name
            FROM authors
            WHERE name ILIKE %s ESCAPE '\\'
            LIMIT %s
        """, text, limit)

    def close(self):
        """Close all connections in the pool."""
        if self.connection_pool:
            self.connection_pool.closeall()
            logger.info("Database connection pool closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class AsyncEntityLookup:
    """Run the blocking table lookups on worker threads."""

    def __init__(self, db: Database):
        self.db = db

    async def quotes(self, text: str, limit: int) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self.db.search_quotes, text, limit)

    async def books(self, text: str, limit: int) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self.db.search_books, text, limit)

    async def authors(self, text: str, limit: int) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self.db.search_authors, text, limit)
