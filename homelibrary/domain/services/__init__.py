"""
Domain services - use cases orchestrating entities and ports.
"""

from .book_search_service import BookSearchService
from .catalog_service import CatalogService
from .enhanced_search_service import EnhancedSearchService
from .external_search_service import ExternalBookSearchService
from .library_service import LibraryService
from .rating_service import RatingService

__all__ = [
    "BookSearchService",
    "CatalogService",
    "EnhancedSearchService",
    "ExternalBookSearchService",
    "LibraryService",
    "RatingService",
]
