"""
Local catalog search.

Runs the filtered/sorted/paginated catalog query, enriches results with
the caller's own ratings and keeps the search history that powers
suggestions and popular queries.
"""

import logging
import time
from typing import List, Optional
from uuid import UUID

from homelibrary.domain.entities import Book, BookSearchResult, SearchHistoryEntry
from homelibrary.domain.exceptions import BookNotFoundError, SearchFailedError, ValidationError
from homelibrary.domain.ports import (
    BookCatalogRepository,
    RatingRepository,
    SearchHistoryRepository,
)
from homelibrary.domain.value_objects import BookPage, SearchRequest

logger = logging.getLogger(__name__)


class BookSearchService:
    """
    Local catalog search use cases.

    Only the catalog query itself can fail a search. Rating enrichment and
    history recording are best effort.
    """

    def __init__(
        self,
        catalog_repo: BookCatalogRepository,
        rating_repo: RatingRepository,
        history_repo: SearchHistoryRepository,
    ) -> None:
        self._catalog_repo = catalog_repo
        self._rating_repo = rating_repo
        self._history_repo = history_repo

    def search_books(self, request: SearchRequest, user_id: Optional[str] = None) -> BookPage:
        """
        Search the local catalog.

        Args:
            request: Validated search request
            user_id: Caller, used to attach their own ratings (optional)

        Returns:
            BookPage whose page/size echo the request

        Raises:
            SearchFailedError: If the catalog query fails
        """
        start_time = time.perf_counter()
        logger.info(
            "Local search: q=%r category=%r page=%s size=%s sort=%s %s",
            request.normalized_query,
            request.normalized_category,
            request.page,
            request.size,
            request.sort.value,
            request.direction.value,
        )

        try:
            books, total = self._catalog_repo.search(request)
        except Exception as e:
            logger.error(f"Catalog search failed: {e}")
            raise SearchFailedError(f"Search failed: {e}") from e

        results = self._to_results(books, user_id)
        self._record_history(request, user_id, total)

        search_time_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Local search returned {len(results)} of {total} results in {search_time_ms:.1f}ms")

        return BookPage(
            content=results,
            page=request.page,
            size=request.size,
            total_elements=total,
            query=request.normalized_query,
            search_time_ms=search_time_ms,
        )

    def get_book_detail(self, book_id: UUID, user_id: Optional[str] = None) -> BookSearchResult:
        """
        Get a single book, with the caller's rating when known.

        Raises:
            BookNotFoundError: If no book has this id
        """
        book = self._catalog_repo.get_by_id(book_id)
        if book is None:
            raise BookNotFoundError(book_id)

        return self._to_results([book], user_id)[0]

    def get_popular_queries(self, limit: int = 10) -> List[str]:
        self._check_limit(limit)
        return self._history_repo.popular_queries(limit)

    def get_search_suggestions(self, partial: Optional[str], limit: int = 10) -> List[str]:
        """
        Suggest past queries containing `partial`.

        A blank partial query falls back to the popular queries.
        """
        self._check_limit(limit)
        if partial is None or not partial.strip():
            return self._history_repo.popular_queries(limit)

        return self._history_repo.suggestions(partial.strip(), limit)

    def find_similar_books(self, book_id: UUID, limit: int = 10) -> List[BookSearchResult]:
        """
        Books by the same author or in the same category.

        Raises:
            BookNotFoundError: If the reference book does not exist
        """
        self._check_limit(limit)
        book = self._catalog_repo.get_by_id(book_id)
        if book is None:
            raise BookNotFoundError(book_id)

        similar = [b for b in self._catalog_repo.find_similar(book, limit) if b.id != book_id]
        return [BookSearchResult(book=b) for b in similar[:limit]]

    def get_user_search_history(self, user_id: str, limit: int = 20) -> List[str]:
        if not (1 <= limit <= 100):
            raise ValidationError(f"limit must be between 1 and 100, got {limit}")
        return self._history_repo.recent_for_user(user_id, limit)

    def clear_user_search_history(self, user_id: str) -> int:
        removed = self._history_repo.delete_for_user(user_id)
        logger.info(f"Cleared {removed} search history entries for user {user_id}")
        return removed

    # =========================================================================
    # Private helper methods
    # =========================================================================

    def _to_results(self, books: List[Book], user_id: Optional[str]) -> List[BookSearchResult]:
        user_ratings = {}
        if user_id and books:
            try:
                user_ratings = self._rating_repo.get_user_ratings(user_id, [b.id for b in books])
            except Exception as e:
                logger.warning(f"Could not load user ratings: {e}")

        return [BookSearchResult(book=b, user_rating=user_ratings.get(b.id)) for b in books]

    def _record_history(self, request: SearchRequest, user_id: Optional[str], total: int) -> None:
        if not request.has_query():
            return

        try:
            self._history_repo.record(
                SearchHistoryEntry(
                    query=request.normalized_query,
                    result_count=total,
                    user_id=user_id,
                )
            )
        except Exception as e:
            # Never fail a search because history could not be written
            logger.warning(f"Failed to record search history: {e}")

    @staticmethod
    def _check_limit(limit: int) -> None:
        if not (1 <= limit <= 50):
            raise ValidationError(f"limit must be between 1 and 50, got {limit}")
