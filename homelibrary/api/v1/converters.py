"""
Converters between domain entities/value objects and API schemas.

This module centralizes all conversion logic between the domain layer
and the API layer, maintaining clean separation of concerns.
"""

from dataclasses import asdict
from typing import Optional

from homelibrary.domain import entities as domain
from homelibrary.domain import value_objects as domain_vo
from homelibrary.api.v1 import schemas as api


def search_params_to_domain(
    q: Optional[str] = None,
    category: Optional[str] = None,
    min_rating: Optional[float] = None,
    min_year: Optional[int] = None,
    max_year: Optional[int] = None,
    page: int = 0,
    size: int = 20,
    sort: Optional[str] = None,
    direction: Optional[str] = None,
) -> domain_vo.SearchRequest:
    """
    Build a validated SearchRequest from query-string parameters.

    Raises:
        ValidationError: If any parameter is invalid
    """
    return domain_vo.SearchRequest(
        query=q,
        category=category,
        min_rating=min_rating,
        min_year=min_year,
        max_year=max_year,
        page=page,
        size=size,
        sort=domain_vo.SortField.parse(sort),
        direction=domain_vo.SortDirection.parse(direction),
    )


def domain_book_to_api(book: domain.Book, user_rating: Optional[int] = None) -> api.Book:
    return api.Book(**asdict(book), user_rating=user_rating)


def domain_search_result_to_api(result: domain.BookSearchResult) -> api.Book:
    return domain_book_to_api(result.book, user_rating=result.user_rating)


def domain_external_book_to_api(book: domain.ExternalBook) -> api.ExternalBook:
    return api.ExternalBook(**asdict(book))


def domain_page_to_api(page: domain_vo.BookPage) -> api.Page[api.Book]:
    return api.Page[api.Book](
        content=[domain_search_result_to_api(r) for r in page.content],
        page=page.page,
        size=page.size,
        total_elements=page.total_elements,
        total_pages=page.total_pages,
        first=page.first,
        last=page.last,
        number_of_elements=page.number_of_elements,
        has_next=page.has_next,
        has_previous=page.has_previous,
        query=page.query,
        search_time_ms=page.search_time_ms,
    )


def make_page(item_type, content: list, page: int, size: int, total: int) -> api.Page:
    """Wrap an already converted list in a Page, deriving the navigation flags."""
    book_page = domain_vo.BookPage(content=content, page=page, size=size, total_elements=total)
    return api.Page[item_type](
        content=content,
        page=page,
        size=size,
        total_elements=total,
        total_pages=book_page.total_pages,
        first=book_page.first,
        last=book_page.last,
        number_of_elements=book_page.number_of_elements,
        has_next=book_page.has_next,
        has_previous=book_page.has_previous,
    )


def domain_health_to_api(health: domain_vo.ExternalApiHealthStatus) -> api.ExternalApiHealth:
    return api.ExternalApiHealth(
        overall_healthy=health.overall_healthy,
        providers={
            source: api.ProviderStatus(healthy=status.healthy, message=status.message)
            for source, status in health.providers.items()
        },
    )


def domain_enhanced_response_to_api(
    response: domain_vo.EnhancedSearchResponse,
) -> api.EnhancedSearchResponse:
    health = response.external_api_health_status
    return api.EnhancedSearchResponse(
        local_results=domain_page_to_api(response.local_results),
        external_results=[domain_external_book_to_api(b) for b in response.external_results],
        external_search_performed=response.external_search_performed,
        external_api_health_status=domain_health_to_api(health) if health is not None else None,
        total_local_results=response.total_local_results,
        total_external_results=response.total_external_results,
        total_combined_results=response.total_combined_results,
        total_search_time_ms=response.total_search_time_ms,
    )


def domain_isbn_validation_to_api(result: domain_vo.IsbnValidation) -> api.IsbnValidation:
    book = None
    external_book = None
    if isinstance(result.book, domain.Book):
        book = domain_book_to_api(result.book)
    elif isinstance(result.book, domain.ExternalBook):
        external_book = domain_external_book_to_api(result.book)

    return api.IsbnValidation(
        isbn=result.isbn,
        valid=result.valid,
        exists_in_catalog=result.exists_in_catalog,
        book=book,
        external_book=external_book,
        error_message=result.error_message,
    )


def domain_library_book_to_api(item: domain.LibraryBook) -> api.LibraryBook:
    entry = item.entry
    return api.LibraryBook(
        id=entry.id,
        book_id=entry.book_id,
        book=domain_book_to_api(item.book, user_rating=item.user_rating),
        status=entry.status.value,
        current_page=entry.current_page,
        personal_notes=entry.personal_notes,
        physical_location=entry.physical_location,
        user_rating=item.user_rating,
        date_added=entry.date_added,
        date_started=entry.date_started,
        date_completed=entry.date_completed,
    )


def domain_library_statistics_to_api(stats: domain_vo.LibraryStatistics) -> api.LibraryStatistics:
    return api.LibraryStatistics(
        total=stats.total,
        by_status={status.value: count for status, count in stats.by_status.items()},
    )


def domain_rating_to_api(rating: domain.Rating) -> api.Rating:
    return api.Rating(**asdict(rating))


def domain_rating_statistics_to_api(stats: domain_vo.RatingStatistics) -> api.RatingStatistics:
    return api.RatingStatistics(
        average_rating=stats.average_rating,
        rating_count=stats.rating_count,
        distribution=dict(stats.distribution),
    )
