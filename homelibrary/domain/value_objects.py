"""
Value objects for the domain layer.

Value objects are immutable objects that represent descriptive aspects
of the domain with no conceptual identity.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .exceptions import ValidationError


MAX_PAGE_SIZE = 100
MAX_QUERY_LENGTH = 500


class ReadingStatus(str, Enum):
    """
    Reading status of a book in a personal library.

    Uppercase is the only accepted spelling. Lowercase input such as
    'read' is rejected instead of being silently coerced.
    """

    UNREAD = "UNREAD"
    READING = "READING"
    READ = "READ"
    DNF = "DNF"

    @classmethod
    def parse(cls, value: str) -> "ReadingStatus":
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError(
                f"Invalid reading status '{value}'. Allowed values: {allowed}"
            ) from None


class SortField(str, Enum):
    """Fields the local catalog search can be ordered by."""

    TITLE = "title"
    AUTHOR = "author"
    PUBLICATION_YEAR = "publication_year"
    RATING = "rating"
    CREATED_AT = "created_at"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortField":
        """
        Parse a sort field, accepting the camelCase spellings used by the UI.

        Raises:
            ValidationError: If the value is not a known sort field
        """
        if value is None or not value.strip():
            return cls.TITLE

        key = value.strip().lower()
        aliases = {
            "title": cls.TITLE,
            "author": cls.AUTHOR,
            "publicationyear": cls.PUBLICATION_YEAR,
            "publication_year": cls.PUBLICATION_YEAR,
            "year": cls.PUBLICATION_YEAR,
            "rating": cls.RATING,
            "averagerating": cls.RATING,
            "average_rating": cls.RATING,
            "createdat": cls.CREATED_AT,
            "created_at": cls.CREATED_AT,
        }
        if key not in aliases:
            allowed = ", ".join(f.value for f in cls)
            raise ValidationError(f"Invalid sort field '{value}'. Allowed values: {allowed}")
        return aliases[key]


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortDirection":
        if value is None or not value.strip():
            return cls.ASC

        key = value.strip().lower()
        if key in ("asc", "ascending"):
            return cls.ASC
        if key in ("desc", "descending"):
            return cls.DESC
        raise ValidationError(f"Invalid sort direction '{value}'. Allowed values: asc, desc")


@dataclass(frozen=True)
class SearchRequest:
    """
    Parameters of a local catalog search.

    All filters are optional. Validation happens on construction so an
    invalid request never reaches the repository.
    """

    query: Optional[str] = None
    """Free text matched against title, author (substring) and ISBN (exact)"""

    category: Optional[str] = None
    """Category name (case-insensitive exact match)"""

    min_rating: Optional[float] = None
    """Minimum average rating (1.0 to 5.0)"""

    min_year: Optional[int] = None
    """Minimum publication year (inclusive)"""

    max_year: Optional[int] = None
    """Maximum publication year (inclusive)"""

    page: int = 0
    """Zero-based page index"""

    size: int = 20
    """Page size (1-100)"""

    sort: SortField = SortField.TITLE
    direction: SortDirection = SortDirection.ASC

    def __post_init__(self) -> None:
        """Validate request constraints."""
        if self.query is not None and len(self.query) > MAX_QUERY_LENGTH:
            raise ValidationError(
                f"Search query must not exceed {MAX_QUERY_LENGTH} characters"
            )

        if self.page < 0:
            raise ValidationError(f"page must be >= 0, got {self.page}")

        if not (1 <= self.size <= MAX_PAGE_SIZE):
            raise ValidationError(
                f"size must be between 1 and {MAX_PAGE_SIZE}, got {self.size}"
            )

        if self.min_rating is not None and not (1.0 <= self.min_rating <= 5.0):
            raise ValidationError(
                f"min_rating must be between 1 and 5, got {self.min_rating}"
            )

        for name in ("min_year", "max_year"):
            year = getattr(self, name)
            if year is not None and not (1000 <= year <= 2100):
                raise ValidationError(f"{name} must be between 1000 and 2100, got {year}")

        if self.min_year is not None and self.max_year is not None:
            if self.min_year > self.max_year:
                raise ValidationError(
                    f"min_year ({self.min_year}) cannot be greater than "
                    f"max_year ({self.max_year})"
                )

        if not isinstance(self.sort, SortField):
            raise ValidationError(f"Invalid sort field '{self.sort}'")
        if not isinstance(self.direction, SortDirection):
            raise ValidationError(f"Invalid sort direction '{self.direction}'")

    @property
    def normalized_query(self) -> Optional[str]:
        """Trimmed query, or None when there is no text to search for."""
        if self.query is None:
            return None
        stripped = self.query.strip()
        return stripped or None

    @property
    def normalized_category(self) -> Optional[str]:
        if self.category is None:
            return None
        stripped = self.category.strip()
        return stripped or None

    def has_query(self) -> bool:
        return self.normalized_query is not None

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass(frozen=True)
class BookPage:
    """
    One page of local catalog results.

    Navigation flags are derived from page/size/total_elements so they
    can never disagree with each other.
    """

    content: list
    """List of BookSearchResult entities"""

    page: int
    size: int
    total_elements: int
    query: Optional[str] = None
    search_time_ms: Optional[float] = None

    def __post_init__(self) -> None:
        if self.total_elements < 0:
            raise ValueError(f"total_elements cannot be negative, got {self.total_elements}")
        if self.size < 1:
            raise ValueError(f"size must be >= 1, got {self.size}")

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_elements / self.size)

    @property
    def number_of_elements(self) -> int:
        return len(self.content)

    @property
    def first(self) -> bool:
        return self.page == 0

    @property
    def last(self) -> bool:
        return self.page >= self.total_pages - 1

    @property
    def has_next(self) -> bool:
        return not self.last

    @property
    def has_previous(self) -> bool:
        return self.page > 0


@dataclass(frozen=True)
class ProviderStatus:
    """Reachability of one external provider."""

    healthy: bool
    message: str


@dataclass(frozen=True)
class ExternalApiHealthStatus:
    """
    Snapshot of provider reachability, keyed by provider source name.

    Recomputed on demand, never persisted.
    """

    providers: Dict[str, ProviderStatus] = field(default_factory=dict)

    @property
    def overall_healthy(self) -> bool:
        return bool(self.providers) and all(s.healthy for s in self.providers.values())


@dataclass(frozen=True)
class ExternalSearchOutcome:
    """Merged provider results plus the per-provider status observed while fetching them."""

    results: list
    """List of ExternalBook entities, in provider order, deduplicated"""

    health: ExternalApiHealthStatus = field(default_factory=ExternalApiHealthStatus)

    @staticmethod
    def empty() -> "ExternalSearchOutcome":
        return ExternalSearchOutcome(results=[])


@dataclass(frozen=True)
class EnhancedSearchResponse:
    """
    Combined response of local search plus external fallback.

    Local results are never reordered; external results follow them.
    """

    local_results: BookPage
    external_results: list
    external_search_performed: bool
    external_api_health_status: Optional[ExternalApiHealthStatus] = None
    total_search_time_ms: float = 0.0

    @property
    def total_local_results(self) -> int:
        return len(self.local_results.content)

    @property
    def total_external_results(self) -> int:
        return len(self.external_results)

    @property
    def total_combined_results(self) -> int:
        return self.total_local_results + self.total_external_results


@dataclass(frozen=True)
class RatingStatistics:
    """Aggregate rating data for one book."""

    average_rating: Optional[float]
    rating_count: int
    distribution: Dict[int, int]
    """Count per star value, always with keys 1..5"""

    def __post_init__(self) -> None:
        if self.rating_count != sum(self.distribution.values()):
            raise ValueError(
                f"Invariant violated: rating_count ({self.rating_count}) must equal "
                f"the sum of the distribution ({sum(self.distribution.values())})"
            )


@dataclass(frozen=True)
class IsbnValidation:
    """Outcome of validating an ISBN against the catalog and the providers."""

    isbn: str
    valid: bool
    exists_in_catalog: bool = False
    book: Optional[object] = None
    """Local Book when exists_in_catalog, else an ExternalBook from enrichment (or None)"""

    error_message: Optional[str] = None


@dataclass(frozen=True)
class ImportSummary:
    """
    Summary of a bulk import from the external providers into the catalog.
    """

    n_fetched: int
    n_inserted: int
    n_skipped: int
    n_errors: int
    query: str
    errors: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        for name in ("n_fetched", "n_inserted", "n_skipped", "n_errors"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative, got {getattr(self, name)}")

        # Invariant: fetched = inserted + skipped + errors
        expected_fetched = self.n_inserted + self.n_skipped + self.n_errors
        if self.n_fetched != expected_fetched:
            raise ValueError(
                f"Invariant violated: n_fetched ({self.n_fetched}) must equal "
                f"n_inserted + n_skipped + n_errors ({expected_fetched})"
            )


@dataclass(frozen=True)
class LibraryStatistics:
    """Entry counts per reading status for one user's library."""

    by_status: Dict[ReadingStatus, int]
    """Count per status, always with every ReadingStatus as a key"""

    @property
    def total(self) -> int:
        return sum(self.by_status.values())
