"""
Port interfaces (protocols) for the domain layer.

Ports define the contracts between the domain and infrastructure layers.
They are implemented by adapters in the infrastructure layer, allowing
the domain to remain independent of technical details.

Following Hexagonal Architecture principles, the domain layer depends only
on these abstract protocols, never on concrete implementations.
"""

from typing import Protocol, List, Optional, Dict, Iterable, Set, Tuple
from uuid import UUID

from .entities import Book, ExternalBook, LibraryEntry, Rating, SearchHistoryEntry
from .value_objects import ReadingStatus, SearchRequest


class BookCatalogRepository(Protocol):
    """
    Port for persisting, retrieving and querying books in the catalog.

    Implementations should handle:
    - Unique ISBN (when present)
    - Proper error handling for database constraints
    - Stable ordering for paginated queries
    """

    def save(self, book: Book) -> None:
        """
        Insert or update a book (keyed by id).

        Raises:
            DuplicateBookError: If another book already has this ISBN
            RuntimeError: If a database error occurs
        """
        ...

    def get_by_id(self, book_id: UUID) -> Optional[Book]:
        """Retrieve a book by its UUID, or None."""
        ...

    def get_by_isbn(self, isbn: str) -> Optional[Book]:
        """Retrieve a book by normalized ISBN, or None."""
        ...

    def exists_by_title_and_author(self, title: str, author: str) -> bool:
        """Case-insensitive check for an existing title/author pair."""
        ...

    def search(self, request: SearchRequest) -> Tuple[List[Book], int]:
        """
        Execute a filtered, sorted, paginated catalog query.

        Args:
            request: Validated search request

        Returns:
            (books on the requested page, total number of matching books)

        Raises:
            RuntimeError: If the query fails
        """
        ...

    def find_existing_isbns(self, isbns: Iterable[str]) -> Set[str]:
        """
        Return the subset of the given normalized ISBNs present in the catalog.
        """
        ...

    def find_similar(self, book: Book, limit: int) -> List[Book]:
        """
        Books sharing the author or category of `book`, excluding `book` itself.
        """
        ...

    def list_categories(self) -> List[Tuple[str, int]]:
        """
        Distinct categories (case-insensitive) with their book counts,
        ordered by name.
        """
        ...

    def count(self) -> int:
        """Total number of books in the catalog."""
        ...


class LibraryRepository(Protocol):
    """
    Port for personal library entries.

    The (user_id, book_id) pair is unique.
    """

    def save(self, entry: LibraryEntry) -> None:
        """
        Insert or update an entry (keyed by id).

        Raises:
            DuplicateLibraryEntryError: If another entry exists for the same (user, book)
        """
        ...

    def get(self, user_id: str, book_id: UUID) -> Optional[LibraryEntry]:
        ...

    def exists(self, user_id: str, book_id: UUID) -> bool:
        ...

    def delete(self, user_id: str, book_id: UUID) -> bool:
        """Delete the entry. Returns True if one was deleted."""
        ...

    def list_for_user(
        self,
        user_id: str,
        status: Optional[ReadingStatus] = None,
        query: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[LibraryEntry], int]:
        """
        List a user's entries, most recently added first.

        Args:
            user_id: Library owner
            status: Optional reading status filter
            query: Optional title/author substring filter
            limit: Page size
            offset: Rows to skip

        Returns:
            (entries on the page, total matching entries)
        """
        ...

    def count_by_status(self, user_id: str) -> Dict[ReadingStatus, int]:
        """Number of entries per status (statuses with no entries are omitted)."""
        ...


class RatingRepository(Protocol):
    """
    Port for ratings and reviews. (user_id, book_id) is unique.

    Implementations keep Book.average_rating and Book.rating_count in step
    with every write, atomically with the write itself.
    """

    def upsert(self, rating: Rating) -> Tuple[Rating, bool]:
        """
        Insert a rating, or update the value and review of the user's
        existing rating for the same book.

        Returns:
            (stored rating, created) where the stored rating keeps the
            original id and created_at on update
        """
        ...

    def update(self, rating: Rating) -> Optional[Rating]:
        """Update an existing (user_id, book_id) rating; None if there is none."""
        ...

    def get(self, user_id: str, book_id: UUID) -> Optional[Rating]:
        ...

    def delete(self, user_id: str, book_id: UUID) -> bool:
        ...

    def list_for_book(
        self, book_id: UUID, limit: int = 20, offset: int = 0
    ) -> Tuple[List[Rating], int]:
        """Ratings for one book, newest first, plus the total count."""
        ...

    def list_for_user(
        self, user_id: str, limit: int = 20, offset: int = 0
    ) -> Tuple[List[Rating], int]:
        """One user's ratings, newest first, plus the total count."""
        ...

    def get_user_ratings(self, user_id: str, book_ids: List[UUID]) -> Dict[UUID, int]:
        """Batch lookup of one user's rating values for several books."""
        ...

    def aggregate(self, book_id: UUID) -> Tuple[Optional[float], int]:
        """(mean rating, number of ratings) for a book. Mean is None when unrated."""
        ...

    def distribution(self, book_id: UUID) -> Dict[int, int]:
        """Count of ratings per star value (missing values are omitted)."""
        ...


class SearchHistoryRepository(Protocol):
    """
    Port for recorded searches.
    """

    def record(self, entry: SearchHistoryEntry) -> None:
        ...

    def popular_queries(self, limit: int) -> List[str]:
        """Most frequently searched queries, most frequent first."""
        ...

    def suggestions(self, partial: str, limit: int) -> List[str]:
        """Recorded queries containing `partial`, most frequent first."""
        ...

    def recent_for_user(self, user_id: str, limit: int) -> List[str]:
        """Distinct queries by one user, most recent first."""
        ...

    def delete_for_user(self, user_id: str) -> int:
        """Remove a user's history. Returns the number of rows removed."""
        ...


class ExternalBooksProvider(Protocol):
    """
    Port for a third-party book metadata API (OpenLibrary, Google Books).

    Implementations translate the provider's payload into ExternalBook
    entities tagged with get_source_name(). Every HTTP call must be bounded
    by a timeout.

    All search methods raise RuntimeError on transport errors, non-2xx
    responses and malformed payloads; aggregation services are expected to
    absorb these.
    """

    def get_source_name(self) -> str:
        """
        Get the source identifier for this provider.

        Returns:
            String identifier (e.g., 'open_library', 'google_books')
        """
        ...

    def search_books(self, query: str, max_results: int = 10) -> List[ExternalBook]:
        """
        Free-text search.

        Raises:
            ValueError: If query is empty
            RuntimeError: If the provider request fails
        """
        ...

    def search_by_title(self, title: str, max_results: int = 10) -> List[ExternalBook]:
        ...

    def search_by_author(self, author: str, max_results: int = 10) -> List[ExternalBook]:
        ...

    def search_by_isbn(self, isbn: str) -> List[ExternalBook]:
        ...

    def check_health(self) -> bool:
        """
        Cheap reachability probe.

        Returns:
            True if the provider answered a minimal query successfully.
            Never raises.
        """
        ...
