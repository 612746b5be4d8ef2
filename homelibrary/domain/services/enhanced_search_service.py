"""
Enhanced search: local catalog search with external fallback.

Flow for one request:

    local page = BookSearchService.search_books(request)
    if len(local page) < min_local_results and include_external and request has text:
        outcome = ExternalBookSearchService.search(query, max_external_results)
        drop external results whose ISBN already exists in the catalog
    compose EnhancedSearchResponse(local page, external results, ...)

The local page is passed through untouched. External results follow it in
provider order.
"""

import logging
import time
from typing import Optional

from homelibrary.domain.ports import BookCatalogRepository
from homelibrary.domain.utils import normalize_isbn
from homelibrary.domain.value_objects import EnhancedSearchResponse, SearchRequest
from homelibrary.domain.exceptions import ValidationError
from .book_search_service import BookSearchService
from .external_search_service import ExternalBookSearchService

logger = logging.getLogger(__name__)


class EnhancedSearchService:
    """
    Decides whether to fall back to external providers and composes the response.

    Holds no per-request state; one instance serves all requests.
    """

    DEFAULT_MIN_LOCAL_RESULTS = 5
    DEFAULT_MAX_EXTERNAL_RESULTS = 20
    MAX_MIN_LOCAL_RESULTS = 50
    MAX_EXTERNAL_RESULTS = 40

    def __init__(
        self,
        book_search: BookSearchService,
        external_search: ExternalBookSearchService,
        catalog_repo: BookCatalogRepository,
    ) -> None:
        self._book_search = book_search
        self._external_search = external_search
        self._catalog_repo = catalog_repo

    def search_with_external_fallback(
        self,
        request: SearchRequest,
        user_id: Optional[str] = None,
        include_external: bool = True,
        min_local_results: int = DEFAULT_MIN_LOCAL_RESULTS,
        max_external_results: int = DEFAULT_MAX_EXTERNAL_RESULTS,
    ) -> EnhancedSearchResponse:
        """
        Search locally, then externally when local coverage is thin.

        Args:
            request: Validated local search request
            user_id: Caller (optional), forwarded to the local search
            include_external: Allow the external fallback at all
            min_local_results: Fallback triggers when the local page holds fewer results (0-50)
            max_external_results: Cap on merged external results (1-40)

        Returns:
            EnhancedSearchResponse

        Raises:
            ValidationError: If the thresholds are out of range
            SearchFailedError: If the local search fails (provider failures never raise)
        """
        if not (0 <= min_local_results <= self.MAX_MIN_LOCAL_RESULTS):
            raise ValidationError(
                f"min_local_results must be between 0 and {self.MAX_MIN_LOCAL_RESULTS}, "
                f"got {min_local_results}"
            )
        if not (1 <= max_external_results <= self.MAX_EXTERNAL_RESULTS):
            raise ValidationError(
                f"max_external_results must be between 1 and {self.MAX_EXTERNAL_RESULTS}, "
                f"got {max_external_results}"
            )

        start_time = time.perf_counter()

        local_page = self._book_search.search_books(request, user_id)
        local_count = len(local_page.content)

        should_search_external = (
            include_external
            and local_count < min_local_results
            and request.has_query()
            and self._external_search.is_enabled
        )

        external_results = []
        health = None

        if should_search_external:
            logger.info(
                f"Local results ({local_count}) below threshold ({min_local_results}), "
                f"searching external providers for '{request.normalized_query}'"
            )
            outcome = self._external_search.search(
                request.normalized_query, limit=max_external_results
            )
            external_results = self._drop_books_already_in_catalog(outcome.results)
            health = outcome.health
        else:
            logger.debug(
                f"External search skipped (local={local_count}, threshold={min_local_results}, "
                f"include_external={include_external})"
            )

        total_ms = (time.perf_counter() - start_time) * 1000

        response = EnhancedSearchResponse(
            local_results=local_page,
            external_results=external_results,
            external_search_performed=should_search_external,
            external_api_health_status=health,
            total_search_time_ms=total_ms,
        )

        logger.info(
            f"Enhanced search completed: {response.total_local_results} local, "
            f"{response.total_external_results} external, "
            f"external performed={response.external_search_performed}"
        )
        return response

    def _drop_books_already_in_catalog(self, results: list) -> list:
        isbns = {normalize_isbn(b.isbn) for b in results if normalize_isbn(b.isbn)}
        if not isbns:
            return list(results)

        try:
            existing = self._catalog_repo.find_existing_isbns(isbns)
        except Exception as e:
            logger.warning(f"Could not check external results against the catalog: {e}")
            return list(results)

        kept = [b for b in results if normalize_isbn(b.isbn) not in existing]
        if len(kept) != len(results):
            logger.debug(f"Dropped {len(results) - len(kept)} external results already in the catalog")
        return kept
