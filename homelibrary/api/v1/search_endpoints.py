"""
API endpoints for book search operations.

This module defines the FastAPI routes for local search, enhanced search
with external fallback, suggestions, search history and provider health.
It handles HTTP concerns and delegates to domain services; domain errors
are turned into HTTP responses by the handlers registered in main.py.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from homelibrary.domain.ports import BookCatalogRepository
from homelibrary.domain.services import (
    BookSearchService,
    EnhancedSearchService,
    ExternalBookSearchService,
)
from homelibrary.api.v1 import schemas as api
from homelibrary.api.v1.converters import (
    domain_enhanced_response_to_api,
    domain_health_to_api,
    domain_page_to_api,
    domain_search_result_to_api,
    search_params_to_domain,
)
from homelibrary.api.v1.dependencies import (
    get_book_search_service,
    get_catalog_repository,
    get_current_user_id,
    get_enhanced_search_service,
    get_external_search_service,
    get_optional_user_id,
)

router = APIRouter()


@router.get("/search/books", response_model=api.ApiResponse[api.Page[api.Book]])
def search_books(
    q: Optional[str] = Query(default=None, description="Text matched against title, author and ISBN"),
    category: Optional[str] = None,
    min_rating: Optional[float] = Query(default=None, alias="minRating"),
    min_year: Optional[int] = Query(default=None, alias="minYear"),
    max_year: Optional[int] = Query(default=None, alias="maxYear"),
    page: int = 0,
    size: int = 20,
    sort: Optional[str] = None,
    direction: Optional[str] = None,
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: BookSearchService = Depends(get_book_search_service),
) -> api.ApiResponse[api.Page[api.Book]]:
    """
    Search the local catalog.

    Filters are optional and combined with AND. Results are paginated
    (zero-based page) and sorted by title unless told otherwise.
    """
    request = search_params_to_domain(
        q=q,
        category=category,
        min_rating=min_rating,
        min_year=min_year,
        max_year=max_year,
        page=page,
        size=size,
        sort=sort,
        direction=direction,
    )
    result = service.search_books(request, user_id)
    return api.ApiResponse(data=domain_page_to_api(result))


@router.get("/search/books/enhanced", response_model=api.ApiResponse[api.EnhancedSearchResponse])
def enhanced_search(
    q: Optional[str] = None,
    category: Optional[str] = None,
    min_rating: Optional[float] = Query(default=None, alias="minRating"),
    min_year: Optional[int] = Query(default=None, alias="minYear"),
    max_year: Optional[int] = Query(default=None, alias="maxYear"),
    page: int = 0,
    size: int = 20,
    sort: Optional[str] = None,
    direction: Optional[str] = None,
    include_external: bool = Query(default=True, alias="includeExternal"),
    min_local_results: int = Query(default=5, alias="minLocalResults"),
    max_external_results: int = Query(default=20, alias="maxExternalResults"),
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: EnhancedSearchService = Depends(get_enhanced_search_service),
) -> api.ApiResponse[api.EnhancedSearchResponse]:
    """
    Search locally and fall back to OpenLibrary / Google Books when the
    local page holds fewer than minLocalResults books.

    Provider failures never fail the request: they show up in
    externalApiHealthStatus and the local results are still returned.
    """
    request = search_params_to_domain(
        q=q,
        category=category,
        min_rating=min_rating,
        min_year=min_year,
        max_year=max_year,
        page=page,
        size=size,
        sort=sort,
        direction=direction,
    )
    result = service.search_with_external_fallback(
        request,
        user_id=user_id,
        include_external=include_external,
        min_local_results=min_local_results,
        max_external_results=max_external_results,
    )
    return api.ApiResponse(data=domain_enhanced_response_to_api(result))


@router.get("/search/books/suggestions", response_model=api.ApiResponse[list[str]])
def search_suggestions(
    q: Optional[str] = None,
    limit: int = 10,
    service: BookSearchService = Depends(get_book_search_service),
) -> api.ApiResponse[list[str]]:
    return api.ApiResponse(data=service.get_search_suggestions(q, limit))


@router.get("/search/books/popular", response_model=api.ApiResponse[list[str]])
def popular_searches(
    limit: int = 10,
    service: BookSearchService = Depends(get_book_search_service),
) -> api.ApiResponse[list[str]]:
    return api.ApiResponse(data=service.get_popular_queries(limit))


@router.get("/search/books/{book_id}", response_model=api.ApiResponse[api.Book])
def get_book_by_id(
    book_id: UUID,
    user_id: Optional[str] = Depends(get_optional_user_id),
    service: BookSearchService = Depends(get_book_search_service),
) -> api.ApiResponse[api.Book]:
    """
    Get a book by its unique identifier.

    Raises:
        404: Book not found
    """
    result = service.get_book_detail(book_id, user_id)
    return api.ApiResponse(data=domain_search_result_to_api(result))


@router.get("/search/books/{book_id}/similar", response_model=api.ApiResponse[list[api.Book]])
def similar_books(
    book_id: UUID,
    limit: int = 10,
    service: BookSearchService = Depends(get_book_search_service),
) -> api.ApiResponse[list[api.Book]]:
    results = service.find_similar_books(book_id, limit)
    return api.ApiResponse(data=[domain_search_result_to_api(r) for r in results])


@router.get("/search/history", response_model=api.ApiResponse[list[str]])
def search_history(
    limit: int = 20,
    user_id: str = Depends(get_current_user_id),
    service: BookSearchService = Depends(get_book_search_service),
) -> api.ApiResponse[list[str]]:
    return api.ApiResponse(data=service.get_user_search_history(user_id, limit))


@router.delete("/search/history", response_model=api.ApiResponse[int])
def clear_search_history(
    user_id: str = Depends(get_current_user_id),
    service: BookSearchService = Depends(get_book_search_service),
) -> api.ApiResponse[int]:
    removed = service.clear_user_search_history(user_id)
    return api.ApiResponse(data=removed, message="Search history cleared")


@router.get("/search/external-apis/health", response_model=api.ApiResponse[api.ExternalApiHealth])
def external_api_health(
    service: ExternalBookSearchService = Depends(get_external_search_service),
) -> api.ApiResponse[api.ExternalApiHealth]:
    """
    Probe every configured provider.

    Always 200; overallHealthy is false when any provider is down.
    """
    return api.ApiResponse(data=domain_health_to_api(service.get_health_status()))


@router.get("/health", response_model=api.ApiResponse[api.ServiceHealth])
def health_check(
    catalog_repo: BookCatalogRepository = Depends(get_catalog_repository),
    external: ExternalBookSearchService = Depends(get_external_search_service),
) -> api.ApiResponse[api.ServiceHealth]:
    """Service liveness. Does not call the external providers."""
    return api.ApiResponse(
        data=api.ServiceHealth(
            status="UP",
            catalog_size=catalog_repo.count(),
            external_search_enabled=external.is_enabled,
            external_sources=external.get_source_names(),
        )
    )
