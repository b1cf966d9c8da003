#!/usr/bin/env python3
"""QuoteVault Explorer CLI - book search with fallback and live suggestions."""
import argparse
import asyncio
import sys
import json
from dataclasses import asdict
from tabulate import tabulate
import httpx
from quotevault.client import create_provider, ProviderError
from quotevault.config import Config
from quotevault.database import Database, AsyncEntityLookup
from quotevault.parse import GOOGLE_BOOKS, OPEN_LIBRARY
from quotevault.recent import RecentSearchStore
from quotevault.searchbar import create_orchestrator, create_search_bar
from quotevault.storage import JsonFileStorage
import logging

logger = logging.getLogger(__name__)


def configure_logging(config: Config):
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def recent_store(config: Config) -> RecentSearchStore:
    return RecentSearchStore(JsonFileStorage(config.RECENT_SEARCHES_FILE))


async def search_books(args, config: Config):
    """Run a search, load extra pages, and print the accumulated books."""
    async with httpx.AsyncClient(timeout=config.DEFAULT_TIMEOUT) as http:
        orchestrator = create_orchestrator(config, http, page_size=args.page_size)

        session = await orchestrator.perform_search(
            query=args.query,
            filter=args.filter,
            genres=args.genre or []
        )
        for _ in range(args.pages - 1):
            if not session.has_more:
                break
            session = await orchestrator.load_more()

    if args.query:
        recent_store(config).add(args.query)

    if session.notice:
        logger.warning(session.notice)
    if session.error:
        logger.error(session.error)

    logger.info(
        f"{len(session.books)} books from {session.active_provider or 'no source'} "
        f"(page {session.page}, total {session.total_items}, more: {session.has_more})"
    )
    display_books(session.books, args.format)


def display_books(books, format_type: str):
    """Display books in specified format."""
    if format_type == "table":
        headers = ["Title", "Author", "Year", "Rating", "Pages", "Source"]
        rows = [
            [
                book.title[:50] + "..." if len(book.title) > 50 else book.title,
                book.author[:30] + "..." if len(book.author) > 30 else book.author,
                book.publish_year or "Unknown",
                book.rating or "-",
                book.page_count or "N/A",
                book.source
            ]
            for book in books
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps([asdict(book) for book in books], indent=2))

    elif format_type == "compact":
        for i, book in enumerate(books, 1):
            print(f"{i}. {book.title} - {book.author}")


async def show_suggestions(args, config: Config):
    """Type the query into a search bar and print the debounced suggestions."""
    with Database(config.DATABASE_URL) as db:
        bar = create_search_bar(config, AsyncEntityLookup(db))
        bar.set_query(args.query)
        await bar.scheduler.wait()
        bar.close()

    aggregator = bar.aggregator
    if aggregator.error:
        logger.error(f"Suggestions unavailable: {aggregator.error}")
        return

    rows = [
        [s.type.value, s.text, s.route or ""]
        for s in aggregator.suggestions
    ]
    print("\n" + tabulate(rows, headers=["Type", "Suggestion", "Route"], tablefmt="grid"))


def show_recent(args, config: Config):
    """Show or clear recent searches."""
    store = recent_store(config)
    if args.clear:
        store.clear()
        print("✅ Recent searches cleared\n")
        return

    searches = store.list()
    if not searches:
        print("No recent searches.")
        return
    for i, query in enumerate(searches, 1):
        print(f"{i}. {query}")


async def show_book(args, config: Config):
    """Fetch one book's details from a single source."""
    async with create_provider(args.source, config) as provider:
        try:
            book = await provider.get_book(args.book_id)
        except ProviderError as e:
            logger.error(f"❌ {provider.display_name}: {e}")
            return
    print(json.dumps(asdict(book), indent=2))


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="QuoteVault Explorer - book search and suggestions CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Trending books matching a query
  %(prog)s search "life"

  # Genre search, three pages
  %(prog)s search "" --filter genre --genre fantasy --genre horror --pages 3

  # Live suggestions
  %(prog)s suggest tolkien

  # Book details
  %(prog)s book OL27448W --source open_library
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Search command
    search_parser = subparsers.add_parser("search", help="Search for books")
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument("--filter", choices=["trending", "latest", "genre", ""], default="trending", help="Result filter (default: trending)")
    search_parser.add_argument("--genre", action="append", help="Genre for --filter genre (repeatable)")
    search_parser.add_argument("--pages", type=int, default=1, help="Pages to load (default: 1)")
    search_parser.add_argument("--page-size", type=int, help="Books per page")
    search_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")

    # Suggest command
    suggest_parser = subparsers.add_parser("suggest", help="Show search suggestions")
    suggest_parser.add_argument("query", help="Partial query")

    # Recent command
    recent_parser = subparsers.add_parser("recent", help="Show recent searches")
    recent_parser.add_argument("--clear", action="store_true", help="Forget recent searches")

    # Book command
    book_parser = subparsers.add_parser("book", help="Show one book's details")
    book_parser.add_argument("book_id", help="Provider-specific book id")
    book_parser.add_argument("--source", choices=[GOOGLE_BOOKS, OPEN_LIBRARY], default=GOOGLE_BOOKS, help="Provider to ask")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = Config()
    configure_logging(config)

    try:
        if args.command == "search":
            asyncio.run(search_books(args, config))

        elif args.command == "suggest":
            asyncio.run(show_suggestions(args, config))

        elif args.command == "recent":
            show_recent(args, config)

        elif args.command == "book":
            asyncio.run(show_book(args, config))

    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"❌ Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
