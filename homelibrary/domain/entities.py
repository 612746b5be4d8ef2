"""
Domain entities for the home library service.

Entities are objects with a unique identity that runs through time and
different representations. They are the core building blocks of the domain.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Optional
from uuid import UUID, uuid4

from .exceptions import ValidationError
from .utils import normalize_isbn
from .value_objects import ReadingStatus


MAX_NOTES_LENGTH = 1000
MAX_LOCATION_LENGTH = 200
MAX_REVIEW_LENGTH = 5000


def _validate_descriptive_fields(
    title: str,
    author: str,
    publication_year: Optional[int],
    page_count: Optional[int],
) -> None:
    if not title or not title.strip():
        raise ValidationError("Book title cannot be empty")

    if not author or not author.strip():
        raise ValidationError("Book author cannot be empty")

    if publication_year is not None and not (1000 <= publication_year <= 2100):
        raise ValidationError(
            f"publication_year must be between 1000 and 2100, got {publication_year}"
        )

    if page_count is not None and page_count < 1:
        raise ValidationError(f"page_count must be positive, got {page_count}")


def validate_rating_value(value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"rating must be an integer, got {value!r}")

    if not (1 <= value <= 5):
        raise ValidationError(f"Rating must be between 1 and 5, got {value}")


@dataclass
class Book:
    """
    Represents a book in the shared catalog.

    The id never changes once assigned. average_rating and rating_count are
    aggregates over all Ratings for this book and are only written by the
    rating repository, in the same transaction as the rating change.
    """

    id: UUID
    """Unique identifier for this book in our system"""

    title: str
    """Book title"""

    author: str
    """Author name(s), comma separated when there are several"""

    isbn: Optional[str] = None
    """Normalized ISBN-10 or ISBN-13"""

    publisher: Optional[str] = None

    publication_year: Optional[int] = None

    page_count: Optional[int] = None

    description: Optional[str] = None

    cover_image_url: Optional[str] = None

    category: Optional[str] = None
    """Category/genre name"""

    average_rating: Optional[float] = None
    """Mean of all ratings (1.0 to 5.0), None when unrated"""

    rating_count: int = 0
    """Number of ratings"""

    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    """When this book was added to our catalog"""

    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    """When this book was last updated"""

    def __post_init__(self) -> None:
        """Validate book data."""
        _validate_descriptive_fields(
            self.title, self.author, self.publication_year, self.page_count
        )
        self.isbn = normalize_isbn(self.isbn)

        if self.average_rating is not None and not (0.0 <= self.average_rating <= 5.0):
            raise ValidationError(
                f"average_rating must be between 0.0 and 5.0, got {self.average_rating}"
            )

        if self.rating_count < 0:
            raise ValidationError(f"rating_count cannot be negative, got {self.rating_count}")

    def __eq__(self, other: object) -> bool:
        """Two books are equal if they have the same ID."""
        if not isinstance(other, Book):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        """Hash based on book ID."""
        return hash(self.id)

    @staticmethod
    def create_new(title: str, author: str, **kwargs) -> "Book":
        """
        Factory method to create a new book with auto-generated ID.

        Args:
            title: Book title
            author: Author name(s)
            **kwargs: Additional book attributes

        Returns:
            A new Book instance with generated UUID
        """
        return Book(id=uuid4(), title=title, author=author, **kwargs)


@dataclass
class ExternalBook:
    """
    A provider result normalized to the local Book shape.

    It has no catalog identity until it is imported. `source` says which
    provider produced it.
    """

    title: str
    author: str
    source: str
    """Provider source name ('open_library', 'google_books')"""

    source_id: Optional[str] = None
    """ID in the provider's system"""

    isbn: Optional[str] = None
    publisher: Optional[str] = None
    publication_year: Optional[int] = None
    page_count: Optional[int] = None
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    category: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.source:
            raise ValidationError("External book must carry its source")

        # Providers return junk years and page counts now and then; drop
        # them rather than the whole record.
        if self.publication_year is not None and not (1000 <= self.publication_year <= 2100):
            self.publication_year = None
        if self.page_count is not None and self.page_count < 1:
            self.page_count = None

        _validate_descriptive_fields(
            self.title, self.author, self.publication_year, self.page_count
        )
        self.isbn = normalize_isbn(self.isbn)

    def to_book(self) -> Book:
        """Create a new catalog Book from this result."""
        return Book.create_new(
            title=self.title.strip(),
            author=self.author.strip(),
            isbn=self.isbn,
            publisher=self.publisher,
            publication_year=self.publication_year,
            page_count=self.page_count,
            description=self.description,
            cover_image_url=self.cover_image_url,
            category=self.category,
        )


@dataclass
class BookSearchResult:
    """A catalog book as seen by one caller, with that caller's rating if any."""

    book: Book
    user_rating: Optional[int] = None


@dataclass
class LibraryEntry:
    """
    One book in one user's personal library.

    Owned exclusively by `user_id`. Deleting it never touches the Book.
    """

    id: UUID
    user_id: str
    book_id: UUID
    status: ReadingStatus = ReadingStatus.UNREAD
    current_page: int = 0
    personal_notes: Optional[str] = None
    physical_location: Optional[str] = None
    date_added: datetime = field(default_factory=lambda: datetime.now(UTC))
    date_started: Optional[datetime] = None
    date_completed: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.user_id or not self.user_id.strip():
            raise ValidationError("user_id cannot be empty")

        if not isinstance(self.status, ReadingStatus):
            self.status = ReadingStatus.parse(self.status)

        if self.current_page < 0:
            raise ValidationError(f"current_page cannot be negative, got {self.current_page}")

        if self.personal_notes is not None and len(self.personal_notes) > MAX_NOTES_LENGTH:
            raise ValidationError(
                f"Personal notes must not exceed {MAX_NOTES_LENGTH} characters"
            )

        if self.physical_location is not None and len(self.physical_location) > MAX_LOCATION_LENGTH:
            raise ValidationError(
                f"Physical location must not exceed {MAX_LOCATION_LENGTH} characters"
            )

    def change_status(self, new_status: ReadingStatus, now: Optional[datetime] = None) -> None:
        """
        Move to a new reading status and stamp the matching dates.

        date_started is set when entering READING, date_completed when
        entering READ. Re-entering the same status keeps the original date.
        """
        now = now or datetime.now(UTC)
        old_status = self.status
        self.status = new_status

        if new_status == ReadingStatus.READING and old_status != ReadingStatus.READING:
            self.date_started = now
        if new_status == ReadingStatus.READ and old_status != ReadingStatus.READ:
            if self.date_started is None:
                self.date_started = now
            self.date_completed = now

    @staticmethod
    def create_new(
        user_id: str,
        book_id: UUID,
        status: ReadingStatus = ReadingStatus.UNREAD,
        current_page: int = 0,
        personal_notes: Optional[str] = None,
        physical_location: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "LibraryEntry":
        """
        Factory method for a freshly added library entry.

        Adding a book straight into READING or READ stamps the matching
        dates with the add time.
        """
        now = now or datetime.now(UTC)
        entry = LibraryEntry(
            id=uuid4(),
            user_id=user_id,
            book_id=book_id,
            current_page=current_page,
            personal_notes=personal_notes,
            physical_location=physical_location,
            date_added=now,
        )
        entry.change_status(status, now=now)
        return entry


@dataclass
class Rating:
    """
    One user's rating (and optional review) of one book.

    At most one exists per (user_id, book_id).
    """

    id: UUID
    user_id: str
    book_id: UUID
    rating: int
    review: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Validate rating data."""
        if not self.user_id or not self.user_id.strip():
            raise ValidationError("user_id cannot be empty")

        validate_rating_value(self.rating)

        if self.review is not None:
            self.review = self.review.strip() or None
        if self.review is not None and len(self.review) > MAX_REVIEW_LENGTH:
            raise ValidationError(f"Review must not exceed {MAX_REVIEW_LENGTH} characters")

    @staticmethod
    def create_new(user_id: str, book_id: UUID, rating: int, review: Optional[str] = None) -> "Rating":
        return Rating(id=uuid4(), user_id=user_id, book_id=book_id, rating=rating, review=review)


@dataclass
class SearchHistoryEntry:
    """A recorded local search, used for suggestions and popular queries."""

    query: str
    result_count: int
    user_id: Optional[str] = None
    searched_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if not self.query or not self.query.strip():
            raise ValueError("Search history query cannot be empty")
        if self.result_count < 0:
            raise ValueError(f"result_count cannot be negative, got {self.result_count}")


@dataclass
class LibraryBook:
    """A library entry joined with its catalog book and the owner's rating."""

    entry: LibraryEntry
    book: Book
    user_rating: Optional[int] = None
