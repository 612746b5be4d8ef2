"""
Personal library use cases.

A library entry is private to its owner and always points at an existing
catalog book. The rating shown on an entry is read from the owner's Rating
for that book, never stored on the entry itself.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from homelibrary.domain.entities import Book, LibraryBook, LibraryEntry, validate_rating_value
from homelibrary.domain.exceptions import (
    BookNotFoundError,
    DuplicateLibraryEntryError,
    LibraryEntryNotFoundError,
    ValidationError,
)
from homelibrary.domain.ports import BookCatalogRepository, LibraryRepository, RatingRepository
from homelibrary.domain.value_objects import MAX_PAGE_SIZE, LibraryStatistics, ReadingStatus
from .rating_service import RatingService

logger = logging.getLogger(__name__)


class LibraryService:
    """
    Add, update, remove and list the books in a user's personal library.
    """

    def __init__(
        self,
        library_repo: LibraryRepository,
        catalog_repo: BookCatalogRepository,
        rating_repo: RatingRepository,
        rating_service: RatingService,
    ) -> None:
        self._library_repo = library_repo
        self._catalog_repo = catalog_repo
        self._rating_repo = rating_repo
        self._rating_service = rating_service

    def add_book(
        self,
        user_id: str,
        book_id: UUID,
        status: ReadingStatus = ReadingStatus.UNREAD,
        current_page: int = 0,
        personal_notes: Optional[str] = None,
        physical_location: Optional[str] = None,
    ) -> LibraryBook:
        """
        Add a catalog book to the user's library.

        Raises:
            BookNotFoundError: If the book does not exist
            DuplicateLibraryEntryError: If the book is already in the library
            ValidationError: If any field is invalid
        """
        book = self._require_book(book_id)

        if self._library_repo.exists(user_id, book_id):
            raise DuplicateLibraryEntryError(user_id, book_id)

        self._check_current_page(current_page, book)

        entry = LibraryEntry.create_new(
            user_id=user_id,
            book_id=book_id,
            status=status,
            current_page=current_page,
            personal_notes=_clean(personal_notes),
            physical_location=_clean(physical_location),
        )
        self._library_repo.save(entry)

        logger.info(f"User {user_id} added book {book_id} to library as {entry.status.value}")
        return self._view(entry, book)

    def update_book(
        self,
        user_id: str,
        book_id: UUID,
        status: Optional[ReadingStatus] = None,
        current_page: Optional[int] = None,
        personal_notes: Optional[str] = None,
        physical_location: Optional[str] = None,
        user_rating: Optional[int] = None,
    ) -> LibraryBook:
        """
        Partially update a library entry.

        Fields left as None are unchanged. An empty string clears notes or
        location. A user_rating is stored as the user's Rating for the book.

        Raises:
            LibraryEntryNotFoundError: If the book is not in the library
            ValidationError: If any field is invalid
        """
        entry = self._require_entry(user_id, book_id)
        book = self._require_book(book_id)

        if current_page is not None:
            self._check_current_page(current_page, book)
        if user_rating is not None:
            validate_rating_value(user_rating)

        updated = LibraryEntry(
            id=entry.id,
            user_id=entry.user_id,
            book_id=entry.book_id,
            status=entry.status,
            current_page=entry.current_page if current_page is None else current_page,
            personal_notes=entry.personal_notes if personal_notes is None else _clean(personal_notes),
            physical_location=(
                entry.physical_location if physical_location is None else _clean(physical_location)
            ),
            date_added=entry.date_added,
            date_started=entry.date_started,
            date_completed=entry.date_completed,
        )
        if status is not None:
            updated.change_status(status)

        self._library_repo.save(updated)

        # Only after the entry is stored
        if user_rating is not None:
            self._rating_service.rate_book(user_id, book_id, user_rating)
            book = self._require_book(book_id)

        logger.info(f"User {user_id} updated library entry for book {book_id}")
        return self._view(updated, book)

    def remove_book(self, user_id: str, book_id: UUID) -> None:
        """
        Remove a book from the user's library. The catalog book is kept.

        Raises:
            LibraryEntryNotFoundError: If the book is not in the library
        """
        if not self._library_repo.delete(user_id, book_id):
            raise LibraryEntryNotFoundError(user_id, book_id)
        logger.info(f"User {user_id} removed book {book_id} from library")

    def get_book(self, user_id: str, book_id: UUID) -> LibraryBook:
        entry = self._require_entry(user_id, book_id)
        return self._view(entry, self._require_book(book_id))

    def list_books(
        self,
        user_id: str,
        status: Optional[ReadingStatus] = None,
        query: Optional[str] = None,
        page: int = 0,
        size: int = 20,
    ) -> Tuple[List[LibraryBook], int]:
        """
        List the user's library, most recently added first.

        Returns:
            (books on the page, total matching entries)
        """
        if page < 0:
            raise ValidationError(f"page must be >= 0, got {page}")
        if not (1 <= size <= MAX_PAGE_SIZE):
            raise ValidationError(f"size must be between 1 and {MAX_PAGE_SIZE}, got {size}")

        query = query.strip() if query and query.strip() else None
        entries, total = self._library_repo.list_for_user(
            user_id, status=status, query=query, limit=size, offset=page * size
        )

        ratings = self._rating_repo.get_user_ratings(user_id, [e.book_id for e in entries]) if entries else {}

        books = []
        for entry in entries:
            book = self._catalog_repo.get_by_id(entry.book_id)
            if book is None:
                logger.warning(f"Library entry {entry.id} points at missing book {entry.book_id}")
                continue
            books.append(LibraryBook(entry=entry, book=book, user_rating=ratings.get(entry.book_id)))

        return books, total

    def get_statistics(self, user_id: str) -> LibraryStatistics:
        counts = self._library_repo.count_by_status(user_id)
        return LibraryStatistics(by_status={s: counts.get(s, 0) for s in ReadingStatus})

    # =========================================================================
    # Private helper methods
    # =========================================================================

    def _view(self, entry: LibraryEntry, book: Book) -> LibraryBook:
        rating = self._rating_repo.get(entry.user_id, entry.book_id)
        return LibraryBook(entry=entry, book=book, user_rating=rating.rating if rating else None)

    def _require_book(self, book_id: UUID) -> Book:
        book = self._catalog_repo.get_by_id(book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        return book

    def _require_entry(self, user_id: str, book_id: UUID) -> LibraryEntry:
        entry = self._library_repo.get(user_id, book_id)
        if entry is None:
            raise LibraryEntryNotFoundError(user_id, book_id)
        return entry

    @staticmethod
    def _check_current_page(current_page: int, book: Book) -> None:
        if current_page < 0:
            raise ValidationError(f"current_page cannot be negative, got {current_page}")
        if book.page_count is not None and current_page > book.page_count:
            raise ValidationError(
                f"current_page ({current_page}) cannot exceed the book's page count ({book.page_count})"
            )


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None
