"""
FastAPI dependencies for dependency injection.

This module provides singleton instances of repositories and services
for use with FastAPI's Depends() system, plus the caller identity taken
from the X-User-Id header.

Note: We use module-level singletons instead of @lru_cache with Depends()
parameters, which is an antipattern that can cause unexpected behavior.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional

from fastapi import Header, HTTPException, status

from homelibrary.domain.ports import (
    BookCatalogRepository,
    ExternalBooksProvider,
    LibraryRepository,
    RatingRepository,
    SearchHistoryRepository,
)
from homelibrary.domain.services import (
    BookSearchService,
    CatalogService,
    EnhancedSearchService,
    ExternalBookSearchService,
    LibraryService,
    RatingService,
)
from homelibrary.infrastructure.db.sqlite_book_catalog_repository import SqliteBookCatalogRepository
from homelibrary.infrastructure.db.sqlite_library_repository import SqliteLibraryRepository
from homelibrary.infrastructure.db.sqlite_rating_repository import SqliteRatingRepository
from homelibrary.infrastructure.db.sqlite_search_history_repository import SqliteSearchHistoryRepository
from homelibrary.infrastructure.external.google_books_client import GoogleBooksClient
from homelibrary.infrastructure.external.open_library_client import OpenLibraryClient

logger = logging.getLogger(__name__)

# Configuration from environment
DB_PATH = Path(os.getenv("DB_PATH", "data/library.db"))
OPEN_LIBRARY_BASE_URL = os.getenv("OPEN_LIBRARY_BASE_URL", "https://openlibrary.org")
OPEN_LIBRARY_COVERS_URL = os.getenv("OPEN_LIBRARY_COVERS_URL", "https://covers.openlibrary.org")
GOOGLE_BOOKS_BASE_URL = os.getenv("GOOGLE_BOOKS_BASE_URL", "https://www.googleapis.com/books/v1")
GOOGLE_BOOKS_API_KEY = os.getenv("GOOGLE_BOOKS_API_KEY")
EXTERNAL_API_TIMEOUT_SECONDS = float(os.getenv("EXTERNAL_API_TIMEOUT_SECONDS", "5"))
EXTERNAL_SEARCH_ENABLED = os.getenv("EXTERNAL_SEARCH_ENABLED", "true").lower() in ("1", "true", "yes")

# Module-level singletons (initialized lazily)
_catalog_repository: Optional[BookCatalogRepository] = None
_library_repository: Optional[LibraryRepository] = None
_rating_repository: Optional[RatingRepository] = None
_search_history_repository: Optional[SearchHistoryRepository] = None
_external_search_service: Optional[ExternalBookSearchService] = None
_book_search_service: Optional[BookSearchService] = None
_enhanced_search_service: Optional[EnhancedSearchService] = None
_catalog_service: Optional[CatalogService] = None
_rating_service: Optional[RatingService] = None
_library_service: Optional[LibraryService] = None


def get_catalog_repository() -> BookCatalogRepository:
    """Provide a singleton instance of the catalog repository."""
    global _catalog_repository
    if _catalog_repository is None:
        _catalog_repository = SqliteBookCatalogRepository(DB_PATH)
    return _catalog_repository


def get_library_repository() -> LibraryRepository:
    global _library_repository
    if _library_repository is None:
        _library_repository = SqliteLibraryRepository(DB_PATH)
    return _library_repository


def get_rating_repository() -> RatingRepository:
    global _rating_repository
    if _rating_repository is None:
        _rating_repository = SqliteRatingRepository(DB_PATH)
    return _rating_repository


def get_search_history_repository() -> SearchHistoryRepository:
    global _search_history_repository
    if _search_history_repository is None:
        _search_history_repository = SqliteSearchHistoryRepository(DB_PATH)
    return _search_history_repository


def build_external_providers() -> List[ExternalBooksProvider]:
    """Providers in priority order: OpenLibrary first, then Google Books."""
    if not EXTERNAL_SEARCH_ENABLED:
        logger.info("External search disabled by configuration")
        return []

    return [
        OpenLibraryClient(
            base_url=OPEN_LIBRARY_BASE_URL,
            covers_url=OPEN_LIBRARY_COVERS_URL,
            timeout_seconds=EXTERNAL_API_TIMEOUT_SECONDS,
        ),
        GoogleBooksClient(
            api_key=GOOGLE_BOOKS_API_KEY,
            base_url=GOOGLE_BOOKS_BASE_URL,
            timeout_seconds=EXTERNAL_API_TIMEOUT_SECONDS,
        ),
    ]


def get_external_search_service() -> ExternalBookSearchService:
    global _external_search_service
    if _external_search_service is None:
        _external_search_service = ExternalBookSearchService(
            providers=build_external_providers(),
            timeout_seconds=EXTERNAL_API_TIMEOUT_SECONDS,
        )
    return _external_search_service


def get_book_search_service() -> BookSearchService:
    global _book_search_service
    if _book_search_service is None:
        _book_search_service = BookSearchService(
            catalog_repo=get_catalog_repository(),
            rating_repo=get_rating_repository(),
            history_repo=get_search_history_repository(),
        )
    return _book_search_service


def get_enhanced_search_service() -> EnhancedSearchService:
    """Provide the enhanced search service with all dependencies wired."""
    global _enhanced_search_service
    if _enhanced_search_service is None:
        _enhanced_search_service = EnhancedSearchService(
            book_search=get_book_search_service(),
            external_search=get_external_search_service(),
            catalog_repo=get_catalog_repository(),
        )
    return _enhanced_search_service


def get_catalog_service() -> CatalogService:
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService(
            catalog_repo=get_catalog_repository(),
            external_search=get_external_search_service(),
        )
    return _catalog_service


def get_rating_service() -> RatingService:
    global _rating_service
    if _rating_service is None:
        _rating_service = RatingService(
            rating_repo=get_rating_repository(),
            catalog_repo=get_catalog_repository(),
        )
    return _rating_service


def get_library_service() -> LibraryService:
    global _library_service
    if _library_service is None:
        _library_service = LibraryService(
            library_repo=get_library_repository(),
            catalog_repo=get_catalog_repository(),
            rating_repo=get_rating_repository(),
            rating_service=get_rating_service(),
        )
    return _library_service


def get_optional_user_id(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> Optional[str]:
    """Caller identity when present. Anonymous callers get None."""
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


def get_current_user_id(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> str:
    """
    Caller identity for routes that act on a user's own data.

    Raises:
        HTTPException 401: If the X-User-Id header is missing or blank
    """
    user_id = get_optional_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )
    return user_id


def reset_dependencies() -> None:
    """
    Reset all singletons. Useful for testing.

    This allows tests to inject mock dependencies by resetting
    the module state between test cases.
    """
    global _catalog_repository, _library_repository, _rating_repository
    global _search_history_repository, _external_search_service, _book_search_service
    global _enhanced_search_service, _catalog_service, _rating_service, _library_service

    _catalog_repository = None
    _library_repository = None
    _rating_repository = None
    _search_history_repository = None
    _external_search_service = None
    _book_search_service = None
    _enhanced_search_service = None
    _catalog_service = None
    _rating_service = None
    _library_service = None
