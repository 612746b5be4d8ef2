#!/usr/bin/env python3
"""
Book Import Script.

Searches OpenLibrary and Google Books and copies every result that is not
yet in the local catalog into it.

Usage:
    python -m scripts.import_books --query "science fiction" --max-results 40
    python -m scripts.import_books --query "dune" --db-path data/library.db --no-google
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from homelibrary.domain.services import CatalogService, ExternalBookSearchService
from homelibrary.domain.value_objects import ImportSummary
from homelibrary.infrastructure.db.sqlite_book_catalog_repository import SqliteBookCatalogRepository
from homelibrary.infrastructure.external.google_books_client import GoogleBooksClient
from homelibrary.infrastructure.external.open_library_client import OpenLibraryClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("data/library.db")


def format_summary(summary: ImportSummary) -> str:
    lines = [
        f"Query:    {summary.query}",
        f"Fetched:  {summary.n_fetched}",
        f"Inserted: {summary.n_inserted}",
        f"Skipped:  {summary.n_skipped}",
        f"Errors:   {summary.n_errors}",
    ]
    lines.extend(f"  - {error}" for error in summary.errors)
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the import script.

    Returns:
        Process exit code (0 on success, 1 when the query was rejected
        or the database failed)
    """
    parser = argparse.ArgumentParser(description="Import books from OpenLibrary and Google Books")
    parser.add_argument("--query", "-q", type=str, required=True, help="Search query")
    parser.add_argument(
        "--max-results", "-n",
        type=int,
        default=20,
        help="Maximum number of merged results to import (default: 20)"
    )
    parser.add_argument("--db-path", type=Path, default=DEFAULT_DB_PATH, help="SQLite database file")
    parser.add_argument("--timeout", type=float, default=5.0, help="Per-provider timeout in seconds")
    parser.add_argument("--google-api-key", type=str, default=None, help="Optional Google Books API key")
    parser.add_argument("--no-open-library", action="store_true", help="Skip OpenLibrary")
    parser.add_argument("--no-google", action="store_true", help="Skip Google Books")
    args = parser.parse_args(argv)

    providers = []
    if not args.no_open_library:
        providers.append(OpenLibraryClient(timeout_seconds=args.timeout))
    if not args.no_google:
        providers.append(GoogleBooksClient(api_key=args.google_api_key, timeout_seconds=args.timeout))

    if not providers:
        parser.error("at least one provider must be enabled")

    catalog_repo = SqliteBookCatalogRepository(args.db_path)
    service = CatalogService(
        catalog_repo=catalog_repo,
        external_search=ExternalBookSearchService(providers, timeout_seconds=args.timeout),
    )

    try:
        summary = service.import_from_search(args.query, max_results=args.max_results)
    except (ValueError, RuntimeError) as e:
        logger.error(f"Import failed: {e}")
        return 1

    print(format_summary(summary))
    logger.info(f"Catalog now holds {catalog_repo.count()} books")
    return 0


if __name__ == "__main__":
    sys.exit(main())
