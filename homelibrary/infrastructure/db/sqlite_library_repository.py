"""
SQLite implementation of the LibraryRepository port.

Entries live next to the books table in the same database file; the
title/author filter of list_for_user joins against it.
"""

import sqlite3
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from homelibrary.domain.entities import LibraryEntry
from homelibrary.domain.exceptions import DuplicateLibraryEntryError
from homelibrary.domain.ports import LibraryRepository
from homelibrary.domain.value_objects import ReadingStatus
from .sqlite_base import SqliteRepository, from_iso, like_pattern, to_iso


class SqliteLibraryRepository(SqliteRepository, LibraryRepository):
    """UNIQUE(user_id, book_id) guarantees one entry per user and book."""

    def _init_schema(self) -> None:
        with self._get_connection() as conn:
            conn.execute("""
            CREATE TABLE IF NOT EXISTS library_entries (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                book_id TEXT NOT NULL,
                status TEXT NOT NULL,
                current_page INTEGER NOT NULL DEFAULT 0,
                personal_notes TEXT,
                physical_location TEXT,
                date_added TEXT NOT NULL,
                date_started TEXT,
                date_completed TEXT,
                UNIQUE(user_id, book_id)
            )
        """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_library_user_status ON library_entries(user_id, status)"
            )

    def _entry_to_row(self, entry: LibraryEntry) -> dict:
        return {
            "id": str(entry.id),
            "user_id": entry.user_id,
            "book_id": str(entry.book_id),
            "status": entry.status.value,
            "current_page": entry.current_page,
            "personal_notes": entry.personal_notes,
            "physical_location": entry.physical_location,
            "date_added": to_iso(entry.date_added),
            "date_started": to_iso(entry.date_started),
            "date_completed": to_iso(entry.date_completed),
        }

    def _row_to_entry(self, row: sqlite3.Row) -> LibraryEntry:
        return LibraryEntry(
            id=UUID(row["id"]),
            user_id=row["user_id"],
            book_id=UUID(row["book_id"]),
            status=ReadingStatus(row["status"]),
            current_page=row["current_page"],
            personal_notes=row["personal_notes"],
            physical_location=row["physical_location"],
            date_added=from_iso(row["date_added"]),
            date_started=from_iso(row["date_started"]),
            date_completed=from_iso(row["date_completed"]),
        )

    def save(self, entry: LibraryEntry) -> None:
        try:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT INTO library_entries
                    (id, user_id, book_id, status, current_page, personal_notes,
                     physical_location, date_added, date_started, date_completed)
                    VALUES
                    (:id, :user_id, :book_id, :status, :current_page, :personal_notes,
                     :physical_location, :date_added, :date_started, :date_completed)
                    ON CONFLICT(id) DO UPDATE SET
                        status=excluded.status,
                        current_page=excluded.current_page,
                        personal_notes=excluded.personal_notes,
                        physical_location=excluded.physical_location,
                        date_started=excluded.date_started,
                        date_completed=excluded.date_completed
                """, self._entry_to_row(entry))

        except sqlite3.IntegrityError as e:
            raise DuplicateLibraryEntryError(entry.user_id, entry.book_id) from e
        except sqlite3.Error as e:
            raise RuntimeError(f"Database error while saving library entry: {e}") from e

    def get(self, user_id: str, book_id: UUID) -> Optional[LibraryEntry]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM library_entries WHERE user_id = ? AND book_id = ?",
                (user_id, str(book_id)),
            ).fetchone()
            return self._row_to_entry(row) if row else None

    def exists(self, user_id: str, book_id: UUID) -> bool:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM library_entries WHERE user_id = ? AND book_id = ?",
                (user_id, str(book_id)),
            ).fetchone()
            return row is not None

    def delete(self, user_id: str, book_id: UUID) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM library_entries WHERE user_id = ? AND book_id = ?",
                (user_id, str(book_id)),
            )
            return cursor.rowcount > 0

    def list_for_user(
        self,
        user_id: str,
        status: Optional[ReadingStatus] = None,
        query: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[LibraryEntry], int]:
        clauses = ["e.user_id = ?"]
        params: list = [user_id]

        if status is not None:
            clauses.append("e.status = ?")
            params.append(status.value)

        join = ""
        if query:
            join = "JOIN books b ON b.id = e.book_id"
            clauses.append("(LOWER(b.title) LIKE ? ESCAPE '\\' OR LOWER(b.author) LIKE ? ESCAPE '\\')")
            params.extend([like_pattern(query), like_pattern(query)])

        where = " AND ".join(clauses)

        with self._get_connection() as conn:
            total = conn.execute(
                f"SELECT COUNT(*) as cnt FROM library_entries e {join} WHERE {where}", params
            ).fetchone()["cnt"]

            rows = conn.execute(
                f"""SELECT e.* FROM library_entries e {join} WHERE {where}
                    ORDER BY e.date_added DESC, e.id ASC LIMIT ? OFFSET ?""",
                params + [limit, offset],
            ).fetchall()

        return [self._row_to_entry(row) for row in rows], total

    def count_by_status(self, user_id: str) -> Dict[ReadingStatus, int]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) as cnt FROM library_entries WHERE user_id = ? GROUP BY status",
                (user_id,),
            ).fetchall()
            return {ReadingStatus(row["status"]): row["cnt"] for row in rows}
