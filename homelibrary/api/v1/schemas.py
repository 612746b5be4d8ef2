"""
API schemas (pydantic) for the v1 REST surface.

Every response is wrapped in ApiResponse: {success, data, message}.
Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(CamelModel, Generic[T]):
    """Response envelope shared by every endpoint."""

    success: bool = True
    data: T | None = None
    message: str | None = None


class Page(CamelModel, Generic[T]):
    content: list[T]
    page: int
    size: int
    total_elements: int
    total_pages: int
    first: bool
    last: bool
    number_of_elements: int
    has_next: bool
    has_previous: bool
    query: str | None = None
    search_time_ms: float | None = None


# =============================================================================
# Books
# =============================================================================


class Book(CamelModel):
    """
    API representation of a catalog Book.

    user_rating is the caller's own rating, when the caller is known.
    """

    id: UUID = Field(description="Unique identifier for this book in our system")
    title: str
    author: str
    isbn: str | None = None
    publisher: str | None = None
    publication_year: int | None = None
    page_count: int | None = None
    description: str | None = None
    cover_image_url: str | None = None
    category: str | None = None
    average_rating: float | None = Field(default=None, description="Mean of all ratings")
    rating_count: int = 0
    user_rating: int | None = None
    created_at: datetime
    updated_at: datetime


class ExternalBook(CamelModel):
    """A provider result that is not (yet) in the local catalog."""

    title: str
    author: str
    isbn: str | None = None
    publisher: str | None = None
    publication_year: int | None = None
    page_count: int | None = None
    description: str | None = None
    cover_image_url: str | None = None
    category: str | None = None
    source: str = Field(description="Provider that produced this result ('open_library', 'google_books')")
    source_id: str | None = None


class BookCreateRequest(CamelModel):
    """Request body for POST /books."""

    title: str = Field(min_length=1, max_length=500)
    author: str = Field(min_length=1, max_length=500)
    isbn: str | None = None
    publisher: str | None = None
    publication_year: int | None = None
    page_count: int | None = None
    description: str | None = None
    cover_image_url: str | None = None
    category: str | None = None


class BookUpdateRequest(BookCreateRequest):
    """Request body for PUT /books/{bookId}. Replaces every descriptive field."""


class Category(CamelModel):
    name: str
    book_count: int


class BookImportRequest(CamelModel):
    """Request body for POST /books/import."""

    isbn: str = Field(min_length=1)


class BookImportResult(CamelModel):
    book: Book
    created: bool


class IsbnValidation(CamelModel):
    isbn: str
    valid: bool
    exists_in_catalog: bool = False
    book: Book | None = None
    external_book: ExternalBook | None = None
    error_message: str | None = None


# =============================================================================
# Search
# =============================================================================


class ProviderStatus(CamelModel):
    healthy: bool
    message: str


class ExternalApiHealth(CamelModel):
    overall_healthy: bool
    providers: dict[str, ProviderStatus]


class EnhancedSearchResponse(CamelModel):
    local_results: Page[Book]
    external_results: list[ExternalBook]
    external_search_performed: bool
    external_api_health_status: ExternalApiHealth | None = None
    total_local_results: int
    total_external_results: int
    total_combined_results: int
    total_search_time_ms: float


# =============================================================================
# Personal library
# =============================================================================


class LibraryBook(CamelModel):
    id: UUID = Field(description="Library entry id")
    book_id: UUID
    book: Book
    status: str
    current_page: int
    personal_notes: str | None = None
    physical_location: str | None = None
    user_rating: int | None = None
    date_added: datetime
    date_started: datetime | None = None
    date_completed: datetime | None = None


class LibraryAddRequest(CamelModel):
    """Request body for POST /library/books/{bookId}. Status is uppercase (UNREAD, READING, READ, DNF)."""

    status: str = "UNREAD"
    current_page: int = 0
    personal_notes: str | None = None
    physical_location: str | None = None


class LibraryUpdateRequest(CamelModel):
    """Partial update; omitted fields are left unchanged."""

    status: str | None = None
    current_page: int | None = None
    personal_notes: str | None = None
    physical_location: str | None = None
    user_rating: int | None = None


class LibraryStatistics(CamelModel):
    total: int
    by_status: dict[str, int]


# =============================================================================
# Ratings
# =============================================================================


class RatingRequest(CamelModel):
    rating: int
    review: str | None = None


class Rating(CamelModel):
    id: UUID
    user_id: str
    book_id: UUID
    rating: int
    review: str | None = None
    created_at: datetime
    updated_at: datetime


class RatingStatistics(CamelModel):
    average_rating: float | None = None
    rating_count: int
    distribution: dict[int, int]


class ServiceHealth(CamelModel):
    status: str
    catalog_size: int
    external_search_enabled: bool
    external_sources: list[str]
