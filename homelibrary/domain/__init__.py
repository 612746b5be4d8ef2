"""
Domain layer - Core business logic and entities.

This layer contains the business entities, value objects, and defines
the ports (interfaces) that the infrastructure layer must implement.

It has NO dependencies on external frameworks, databases, or APIs.
"""

from .entities import (
    Book,
    BookSearchResult,
    ExternalBook,
    LibraryBook,
    LibraryEntry,
    Rating,
    SearchHistoryEntry,
)
from .value_objects import (
    ReadingStatus,
    SortField,
    SortDirection,
    SearchRequest,
    BookPage,
    EnhancedSearchResponse,
    ExternalApiHealthStatus,
)

__all__ = [
    # Entities
    "Book",
    "BookSearchResult",
    "ExternalBook",
    "LibraryBook",
    "LibraryEntry",
    "Rating",
    "SearchHistoryEntry",
    # Value Objects
    "ReadingStatus",
    "SortField",
    "SortDirection",
    "SearchRequest",
    "BookPage",
    "EnhancedSearchResponse",
    "ExternalApiHealthStatus",
]
