"""
SQLite implementation of the RatingRepository port.

Ratings live next to the books table in the same database file. Every
write refreshes the book's average_rating and rating_count inside the
same transaction, so the aggregates always match the ratings table.
"""

import sqlite3
from datetime import datetime, UTC
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from homelibrary.domain.entities import Rating
from homelibrary.domain.ports import RatingRepository
from .sqlite_base import SqliteRepository, from_iso, to_iso


_REFRESH_BOOK_AGGREGATE = """
    UPDATE books SET
        average_rating = (SELECT AVG(rating) FROM ratings WHERE book_id = :book_id),
        rating_count = (SELECT COUNT(*) FROM ratings WHERE book_id = :book_id),
        updated_at = :now
    WHERE id = :book_id
"""


class SqliteRatingRepository(SqliteRepository, RatingRepository):
    def _init_schema(self) -> None:
        with self._get_connection() as conn:
            conn.execute("""
            CREATE TABLE IF NOT EXISTS ratings (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                book_id TEXT NOT NULL,
                rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
                review TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE(user_id, book_id)
            )
        """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_ratings_book ON ratings(book_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_ratings_user ON ratings(user_id)")

    def _row_to_rating(self, row: sqlite3.Row) -> Rating:
        return Rating(
            id=UUID(row["id"]),
            user_id=row["user_id"],
            book_id=UUID(row["book_id"]),
            rating=row["rating"],
            review=row["review"],
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )

    def _select(self, conn: sqlite3.Connection, user_id: str, book_id: UUID) -> Optional[Rating]:
        row = conn.execute(
            "SELECT * FROM ratings WHERE user_id = ? AND book_id = ?",
            (user_id, str(book_id)),
        ).fetchone()
        return self._row_to_rating(row) if row else None

    def _refresh_aggregate(self, conn: sqlite3.Connection, book_id: UUID) -> None:
        conn.execute(
            _REFRESH_BOOK_AGGREGATE,
            {"book_id": str(book_id), "now": datetime.now(UTC).isoformat()},
        )

    def upsert(self, rating: Rating) -> Tuple[Rating, bool]:
        """
        Insert the rating, or overwrite the value and review of the one the
        user already has for this book (id and created_at are kept).

        Returns:
            (stored rating, created)
        """
        row = {
            "id": str(rating.id),
            "user_id": rating.user_id,
            "book_id": str(rating.book_id),
            "rating": rating.rating,
            "review": rating.review,
            "created_at": to_iso(rating.created_at),
            "updated_at": to_iso(rating.updated_at),
        }

        try:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT INTO ratings
                    (id, user_id, book_id, rating, review, created_at, updated_at)
                    VALUES
                    (:id, :user_id, :book_id, :rating, :review, :created_at, :updated_at)
                    ON CONFLICT(user_id, book_id) DO UPDATE SET
                        rating=excluded.rating,
                        review=excluded.review,
                        updated_at=excluded.updated_at
                """, row)
                self._refresh_aggregate(conn, rating.book_id)
                stored = self._select(conn, rating.user_id, rating.book_id)

        except sqlite3.IntegrityError as e:
            raise ValueError(f"Rating violates constraints: {e}") from e
        except sqlite3.Error as e:
            raise RuntimeError(f"Database error while saving rating: {e}") from e

        return stored, stored.id == rating.id

    def update(self, rating: Rating) -> Optional[Rating]:
        """
        Overwrite the value and review of an existing rating, matched on
        (user_id, book_id). Returns None when the user has no rating.
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """UPDATE ratings SET rating = ?, review = ?, updated_at = ?
                       WHERE user_id = ? AND book_id = ?""",
                    (rating.rating, rating.review, to_iso(rating.updated_at),
                     rating.user_id, str(rating.book_id)),
                )
                if cursor.rowcount == 0:
                    return None
                self._refresh_aggregate(conn, rating.book_id)
                return self._select(conn, rating.user_id, rating.book_id)

        except sqlite3.Error as e:
            raise RuntimeError(f"Database error while updating rating: {e}") from e

    def get(self, user_id: str, book_id: UUID) -> Optional[Rating]:
        with self._get_connection() as conn:
            return self._select(conn, user_id, book_id)

    def delete(self, user_id: str, book_id: UUID) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM ratings WHERE user_id = ? AND book_id = ?",
                (user_id, str(book_id)),
            )
            if cursor.rowcount == 0:
                return False
            self._refresh_aggregate(conn, book_id)
            return True

    def list_for_book(
        self, book_id: UUID, limit: int = 20, offset: int = 0
    ) -> Tuple[List[Rating], int]:
        with self._get_connection() as conn:
            total = conn.execute(
                "SELECT COUNT(*) as cnt FROM ratings WHERE book_id = ?", (str(book_id),)
            ).fetchone()["cnt"]

            rows = conn.execute(
                """SELECT * FROM ratings WHERE book_id = ?
                   ORDER BY updated_at DESC, id ASC LIMIT ? OFFSET ?""",
                (str(book_id), limit, offset),
            ).fetchall()

        return [self._row_to_rating(row) for row in rows], total

    def list_for_user(
        self, user_id: str, limit: int = 20, offset: int = 0
    ) -> Tuple[List[Rating], int]:
        with self._get_connection() as conn:
            total = conn.execute(
                "SELECT COUNT(*) as cnt FROM ratings WHERE user_id = ?", (user_id,)
            ).fetchone()["cnt"]

            rows = conn.execute(
                """SELECT * FROM ratings WHERE user_id = ?
                   ORDER BY updated_at DESC, id ASC LIMIT ? OFFSET ?""",
                (user_id, limit, offset),
            ).fetchall()

        return [self._row_to_rating(row) for row in rows], total

    def get_user_ratings(self, user_id: str, book_ids: List[UUID]) -> Dict[UUID, int]:
        if not book_ids:
            return {}

        ids = [str(b) for b in book_ids]
        placeholders = ",".join("?" * len(ids))
        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT book_id, rating FROM ratings WHERE user_id = ? AND book_id IN ({placeholders})",
                [user_id] + ids,
            ).fetchall()
            return {UUID(row["book_id"]): row["rating"] for row in rows}

    def aggregate(self, book_id: UUID) -> Tuple[Optional[float], int]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT AVG(rating) as avg, COUNT(*) as cnt FROM ratings WHERE book_id = ?",
                (str(book_id),),
            ).fetchone()
            return row["avg"], row["cnt"]

    def distribution(self, book_id: UUID) -> Dict[int, int]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT rating, COUNT(*) as cnt FROM ratings WHERE book_id = ? GROUP BY rating",
                (str(book_id),),
            ).fetchall()
            return {row["rating"]: row["cnt"] for row in rows}
