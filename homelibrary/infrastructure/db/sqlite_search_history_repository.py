"""
SQLite implementation of the SearchHistoryRepository port.

Queries are stored trimmed and lowercased so that 'Dune' and 'dune '
count as the same search.
"""

from typing import List

from homelibrary.domain.entities import SearchHistoryEntry
from homelibrary.domain.ports import SearchHistoryRepository
from .sqlite_base import SqliteRepository, like_pattern, to_iso


class SqliteSearchHistoryRepository(SqliteRepository, SearchHistoryRepository):
    def _init_schema(self) -> None:
        with self._get_connection() as conn:
            conn.execute("""
            CREATE TABLE IF NOT EXISTS search_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                query TEXT NOT NULL,
                user_id TEXT,
                result_count INTEGER NOT NULL,
                searched_at TEXT NOT NULL
            )
        """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_history_query ON search_history(query)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_history_user ON search_history(user_id)")

    def record(self, entry: SearchHistoryEntry) -> None:
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO search_history (query, user_id, result_count, searched_at) VALUES (?, ?, ?, ?)",
                (entry.query.strip().lower(), entry.user_id, entry.result_count, to_iso(entry.searched_at)),
            )

    def popular_queries(self, limit: int) -> List[str]:
        with self._get_connection() as conn:
            rows = conn.execute(
                """SELECT query FROM search_history
                   GROUP BY query ORDER BY COUNT(*) DESC, MAX(id) DESC LIMIT ?""",
                (limit,),
            ).fetchall()
            return [row["query"] for row in rows]

    def suggestions(self, partial: str, limit: int) -> List[str]:
        with self._get_connection() as conn:
            rows = conn.execute(
                """SELECT query FROM search_history WHERE query LIKE ? ESCAPE '\\'
                   GROUP BY query ORDER BY COUNT(*) DESC, MAX(id) DESC LIMIT ?""",
                (like_pattern(partial.strip()), limit),
            ).fetchall()
            return [row["query"] for row in rows]

    def recent_for_user(self, user_id: str, limit: int) -> List[str]:
        with self._get_connection() as conn:
            rows = conn.execute(
                """SELECT query FROM search_history WHERE user_id = ?
                   GROUP BY query ORDER BY MAX(id) DESC LIMIT ?""",
                (user_id, limit),
            ).fetchall()
            return [row["query"] for row in rows]

    def delete_for_user(self, user_id: str) -> int:
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM search_history WHERE user_id = ?", (user_id,))
            return cursor.rowcount
