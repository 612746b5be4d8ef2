"""
Catalog management: manual creation, ISBN validation and import of
external results into the local catalog.

Import pipeline (bulk):
1. Fetch books from the external providers
2. Skip books already in the catalog (ISBN, then title + author)
3. Persist the rest
4. Return an ImportSummary
"""

import logging
from datetime import datetime, UTC
from typing import List, Optional, Tuple
from uuid import UUID

from homelibrary.domain.entities import Book, ExternalBook
from homelibrary.domain.exceptions import (
    BookNotFoundError,
    DuplicateBookError,
    NotFoundError,
    ValidationError,
)
from homelibrary.domain.ports import BookCatalogRepository
from homelibrary.domain.utils import is_valid_isbn, normalize_isbn
from homelibrary.domain.value_objects import ImportSummary, IsbnValidation
from .external_search_service import ExternalBookSearchService

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Writes to the shared catalog.

    Books enter the catalog only through this service: either typed in by
    hand or copied from an external provider result.
    """

    def __init__(
        self,
        catalog_repo: BookCatalogRepository,
        external_search: ExternalBookSearchService,
    ) -> None:
        self._catalog_repo = catalog_repo
        self._external_search = external_search

    def create_book(self, title: str, author: str, isbn: Optional[str] = None, **kwargs) -> Book:
        """
        Add a book by hand.

        Args:
            title: Book title
            author: Author name(s)
            isbn: Optional ISBN-10/13, validated when present
            **kwargs: Other Book attributes (publisher, publication_year, ...)

        Raises:
            ValidationError: If a field or the ISBN is invalid
            DuplicateBookError: If the ISBN or the title + author pair already exists
        """
        isbn = self._checked_isbn(isbn)
        book = Book.create_new(
            title=title.strip() if title else title,
            author=author.strip() if author else author,
            isbn=isbn,
            **kwargs,
        )
        self._check_not_duplicate(book)
        self._catalog_repo.save(book)

        logger.info(f"Created book {book.id}: '{book.title}' by {book.author}")
        return book

    def update_book(self, book_id: UUID, title: str, author: str, isbn: Optional[str] = None, **kwargs) -> Book:
        """
        Replace a book's descriptive metadata.

        Fields not passed are cleared. The id, created_at and the rating
        aggregates are kept.

        Raises:
            BookNotFoundError: If the book does not exist
            ValidationError: If a field or the ISBN is invalid
            DuplicateBookError: If another book already has the ISBN or the
                title + author pair
        """
        existing = self._catalog_repo.get_by_id(book_id)
        if existing is None:
            raise BookNotFoundError(book_id)

        isbn = self._checked_isbn(isbn)
        book = Book(
            id=existing.id,
            title=title.strip() if title else title,
            author=author.strip() if author else author,
            isbn=isbn,
            average_rating=existing.average_rating,
            rating_count=existing.rating_count,
            created_at=existing.created_at,
            updated_at=datetime.now(UTC),
            **kwargs,
        )

        if book.isbn is not None:
            holder = self._catalog_repo.get_by_isbn(book.isbn)
            if holder is not None and holder.id != book.id:
                raise DuplicateBookError(f"A book with ISBN {book.isbn} already exists")

        renamed = (book.title.lower(), book.author.lower()) != (
            existing.title.lower(), existing.author.lower()
        )
        if renamed and self._catalog_repo.exists_by_title_and_author(book.title, book.author):
            raise DuplicateBookError(f"'{book.title}' by {book.author} already exists in the catalog")

        self._catalog_repo.save(book)
        logger.info(f"Updated book {book.id}: '{book.title}' by {book.author}")
        return book

    def list_categories(self) -> List[Tuple[str, int]]:
        """(category, number of books) pairs, ordered by name."""
        return self._catalog_repo.list_categories()

    def validate_isbn(self, isbn: str) -> IsbnValidation:
        """
        Check an ISBN's format and checksum, then look it up.

        The catalog is consulted first. When the book is not there, the
        external providers are asked for metadata; a provider failure only
        means no enrichment.
        """
        normalized = normalize_isbn(isbn)
        if normalized is None or not is_valid_isbn(normalized):
            return IsbnValidation(
                isbn=isbn,
                valid=False,
                error_message="Invalid ISBN format or checksum",
            )

        existing = self._catalog_repo.get_by_isbn(normalized)
        if existing is not None:
            return IsbnValidation(isbn=normalized, valid=True, exists_in_catalog=True, book=existing)

        results = self._external_search.search_by_isbn(normalized)
        return IsbnValidation(
            isbn=normalized,
            valid=True,
            exists_in_catalog=False,
            book=results[0] if results else None,
        )

    def import_by_isbn(self, isbn: str) -> Tuple[Book, bool]:
        """
        Import the provider record for an ISBN into the catalog.

        Returns:
            (book, created) where created is False when the catalog already
            had the ISBN

        Raises:
            ValidationError: If the ISBN is invalid
            NotFoundError: If no provider knows the ISBN
        """
        normalized = normalize_isbn(isbn)
        if normalized is None or not is_valid_isbn(normalized):
            raise ValidationError(f"Invalid ISBN: {isbn}")

        existing = self._catalog_repo.get_by_isbn(normalized)
        if existing is not None:
            return existing, False

        results = self._external_search.search_by_isbn(normalized)
        if not results:
            raise NotFoundError(f"No book with ISBN {normalized} found in the catalog or the providers")

        book = self.import_external_book(results[0])
        return book, True

    def import_external_book(self, external: ExternalBook) -> Book:
        """
        Copy one external result into the catalog.

        Raises:
            DuplicateBookError: If the catalog already holds it
        """
        book = external.to_book()
        self._check_not_duplicate(book)
        self._catalog_repo.save(book)

        logger.info(f"Imported '{book.title}' from {external.source} as {book.id}")
        return book

    def import_from_search(self, query: str, max_results: int = 20) -> ImportSummary:
        """
        Bulk import: search the providers and import every new result.

        Raises:
            ValidationError: If the query is blank
        """
        if not query or not query.strip():
            raise ValidationError("Import query cannot be empty")

        logger.info(f"Starting import: query='{query}', max_results={max_results}")
        outcome = self._external_search.search(query, limit=max_results)

        for source, status in outcome.health.providers.items():
            if not status.healthy:
                logger.warning(f"{source} unavailable during import: {status.message}")

        books = outcome.results
        if not books:
            logger.warning("No books fetched from the providers")
            return ImportSummary(n_fetched=0, n_inserted=0, n_skipped=0, n_errors=0, query=query)

        n_inserted = 0
        n_skipped = 0
        n_errors = 0
        error_messages = []

        for external in books:
            try:
                self.import_external_book(external)
                n_inserted += 1
            except DuplicateBookError:
                logger.debug(f"Skipping duplicate: {external.title}")
                n_skipped += 1
            except Exception as e:
                n_errors += 1
                error_msg = f"Failed to import {external.title}: {e}"
                logger.warning(error_msg)
                error_messages.append(error_msg)

        logger.info(f"Import complete: {n_inserted} inserted, {n_skipped} skipped, {n_errors} errors")

        return ImportSummary(
            n_fetched=len(books),
            n_inserted=n_inserted,
            n_skipped=n_skipped,
            n_errors=n_errors,
            query=query,
            errors=error_messages,
        )

    @staticmethod
    def _checked_isbn(isbn: Optional[str]) -> Optional[str]:
        if isbn is None or not isbn.strip():
            return None
        if not is_valid_isbn(isbn):
            raise ValidationError(f"Invalid ISBN: {isbn}")
        return isbn

    def _check_not_duplicate(self, book: Book) -> None:
        if book.isbn is not None and self._catalog_repo.get_by_isbn(book.isbn) is not None:
            raise DuplicateBookError(f"A book with ISBN {book.isbn} already exists")

        if self._catalog_repo.exists_by_title_and_author(book.title, book.author):
            raise DuplicateBookError(
                f"'{book.title}' by {book.author} already exists in the catalog"
            )
