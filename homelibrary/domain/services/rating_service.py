"""
Ratings and reviews.

The rating repository refreshes the book's aggregates in the same
transaction as each write, so Book.average_rating is always the mean of its
ratings and Book.rating_count their number (None and 0 with no ratings).
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from homelibrary.domain.entities import Rating
from homelibrary.domain.exceptions import BookNotFoundError, RatingNotFoundError, ValidationError
from homelibrary.domain.ports import BookCatalogRepository, RatingRepository
from homelibrary.domain.value_objects import MAX_PAGE_SIZE, RatingStatistics

logger = logging.getLogger(__name__)


class RatingService:
    def __init__(self, rating_repo: RatingRepository, catalog_repo: BookCatalogRepository) -> None:
        self._rating_repo = rating_repo
        self._catalog_repo = catalog_repo

    def rate_book(
        self, user_id: str, book_id: UUID, rating: int, review: Optional[str] = None
    ) -> Tuple[Rating, bool]:
        """
        Create or update the user's rating of a book.

        Two simultaneous calls for the same user and book both succeed; the
        later write wins and only one rating is ever stored.

        Returns:
            (rating, created) where created is False when an existing
            rating was updated

        Raises:
            BookNotFoundError: If the book does not exist
            ValidationError: If rating or review is invalid
        """
        self._require_book(book_id)

        candidate = Rating.create_new(user_id=user_id, book_id=book_id, rating=rating, review=review)
        stored, created = self._rating_repo.upsert(candidate)

        if created:
            logger.info(f"User {user_id} rated book {book_id}: {rating}")
        else:
            logger.info(f"User {user_id} updated rating of book {book_id}: {rating}")
        return stored, created

    def update_rating(
        self, user_id: str, book_id: UUID, rating: int, review: Optional[str] = None
    ) -> Rating:
        """
        Update an existing rating.

        Raises:
            RatingNotFoundError: If the user has not rated this book
            ValidationError: If rating or review is invalid
        """
        candidate = Rating.create_new(user_id=user_id, book_id=book_id, rating=rating, review=review)
        updated = self._rating_repo.update(candidate)
        if updated is None:
            raise RatingNotFoundError(user_id, book_id)

        logger.info(f"User {user_id} updated rating of book {book_id}: {rating}")
        return updated

    def delete_rating(self, user_id: str, book_id: UUID) -> None:
        if not self._rating_repo.delete(user_id, book_id):
            raise RatingNotFoundError(user_id, book_id)

        logger.info(f"User {user_id} removed rating of book {book_id}")

    def get_user_rating(self, user_id: str, book_id: UUID) -> Rating:
        rating = self._rating_repo.get(user_id, book_id)
        if rating is None:
            raise RatingNotFoundError(user_id, book_id)
        return rating

    def list_book_ratings(self, book_id: UUID, page: int = 0, size: int = 20) -> Tuple[List[Rating], int]:
        """Ratings of a book, newest first, plus the total count."""
        _check_page(page, size)
        self._require_book(book_id)
        return self._rating_repo.list_for_book(book_id, limit=size, offset=page * size)

    def list_user_ratings(self, user_id: str, page: int = 0, size: int = 20) -> Tuple[List[Rating], int]:
        """The user's own ratings across all books, newest first, plus the total count."""
        _check_page(page, size)
        return self._rating_repo.list_for_user(user_id, limit=size, offset=page * size)

    def get_rating_statistics(self, book_id: UUID) -> RatingStatistics:
        self._require_book(book_id)

        average, count = self._rating_repo.aggregate(book_id)
        counts = self._rating_repo.distribution(book_id)
        distribution = {stars: counts.get(stars, 0) for stars in range(1, 6)}

        return RatingStatistics(
            average_rating=round(average, 2) if average is not None else None,
            rating_count=count,
            distribution=distribution,
        )

    def _require_book(self, book_id: UUID) -> None:
        if self._catalog_repo.get_by_id(book_id) is None:
            raise BookNotFoundError(book_id)


def _check_page(page: int, size: int) -> None:
    if page < 0:
        raise ValidationError(f"page must be >= 0, got {page}")
    if not (1 <= size <= MAX_PAGE_SIZE):
        raise ValidationError(f"size must be between 1 and {MAX_PAGE_SIZE}, got {size}")
