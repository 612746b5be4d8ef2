"""
SQLite implementation of the BookCatalogRepository port.

This adapter persists Book entities to a SQLite database, handling
serialization/deserialization, the unique ISBN constraint and the
filtered, sorted, paginated catalog query.
"""

import sqlite3
from typing import Iterable, List, Optional, Set, Tuple
from uuid import UUID

from homelibrary.domain.entities import Book
from homelibrary.domain.exceptions import DuplicateBookError
from homelibrary.domain.ports import BookCatalogRepository
from homelibrary.domain.utils import normalize_isbn
from homelibrary.domain.value_objects import SearchRequest, SortDirection, SortField
from .sqlite_base import SqliteRepository, from_iso, like_pattern, to_iso


# Sort expressions are whitelisted; user input never reaches ORDER BY directly.
_SORT_COLUMNS = {
    SortField.TITLE: "LOWER(title)",
    SortField.AUTHOR: "LOWER(author)",
    SortField.PUBLICATION_YEAR: "publication_year",
    SortField.RATING: "average_rating",
    SortField.CREATED_AT: "created_at",
}


class SqliteBookCatalogRepository(SqliteRepository, BookCatalogRepository):
    """
    The unique constraint on isbn is enforced for books that have one.
    Books without an ISBN are deduplicated by the catalog service on
    title + author instead.
    """

    def _init_schema(self) -> None:
        """Create the books table if it doesn't exist."""
        with self._get_connection() as conn:
            conn.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                author TEXT NOT NULL,
                isbn TEXT UNIQUE,
                publisher TEXT,
                publication_year INTEGER,
                page_count INTEGER,
                description TEXT,
                cover_image_url TEXT,
                category TEXT,
                average_rating REAL,
                rating_count INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_books_title ON books(LOWER(title))")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_books_author ON books(LOWER(author))")

    def _book_to_row(self, book: Book) -> dict:
        """Convert a Book entity to a database row dict."""
        return {
            "id": str(book.id),
            "title": book.title,
            "author": book.author,
            "isbn": book.isbn,
            "publisher": book.publisher,
            "publication_year": book.publication_year,
            "page_count": book.page_count,
            "description": book.description,
            "cover_image_url": book.cover_image_url,
            "category": book.category,
            "average_rating": book.average_rating,
            "rating_count": book.rating_count,
            "created_at": to_iso(book.created_at),
            "updated_at": to_iso(book.updated_at),
        }

    def _row_to_book(self, row: sqlite3.Row) -> Book:
        """Convert a database row to a Book entity."""
        return Book(
            id=UUID(row["id"]),
            title=row["title"],
            author=row["author"],
            isbn=row["isbn"],
            publisher=row["publisher"],
            publication_year=row["publication_year"],
            page_count=row["page_count"],
            description=row["description"],
            cover_image_url=row["cover_image_url"],
            category=row["category"],
            average_rating=row["average_rating"],
            rating_count=row["rating_count"],
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )

    def count(self) -> int:
        """Get the total number of books in the catalog."""
        with self._get_connection() as conn:
            result = conn.execute("SELECT COUNT(*) as cnt FROM books").fetchone()
            return result["cnt"]

    def get_by_id(self, book_id: UUID) -> Optional[Book]:
        """Retrieve a book by its internal UUID."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM books WHERE id = ?",
                (str(book_id),)
            ).fetchone()

            if row is None:
                return None

            return self._row_to_book(row)

    def get_by_isbn(self, isbn: str) -> Optional[Book]:
        normalized = normalize_isbn(isbn)
        if normalized is None:
            return None

        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM books WHERE isbn = ?", (normalized,)).fetchone()
            return self._row_to_book(row) if row else None

    def exists_by_title_and_author(self, title: str, author: str) -> bool:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM books WHERE LOWER(title) = ? AND LOWER(author) = ? LIMIT 1",
                (title.strip().lower(), author.strip().lower()),
            ).fetchone()
            return row is not None

    def save(self, book: Book) -> None:
        """Save a book to the catalog."""
        row = self._book_to_row(book)

        try:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT INTO books
                    (id, title, author, isbn, publisher, publication_year, page_count,
                     description, cover_image_url, category, average_rating, rating_count,
                     created_at, updated_at)
                    VALUES
                    (:id, :title, :author, :isbn, :publisher, :publication_year, :page_count,
                     :description, :cover_image_url, :category, :average_rating, :rating_count,
                     :created_at, :updated_at)
                    ON CONFLICT(id) DO UPDATE SET
                        title=excluded.title,
                        author=excluded.author,
                        isbn=excluded.isbn,
                        publisher=excluded.publisher,
                        publication_year=excluded.publication_year,
                        page_count=excluded.page_count,
                        description=excluded.description,
                        cover_image_url=excluded.cover_image_url,
                        category=excluded.category,
                        updated_at=excluded.updated_at
                """, row)

        except sqlite3.IntegrityError as e:
            raise DuplicateBookError(f"A book with ISBN {book.isbn} already exists") from e
        except sqlite3.Error as e:
            raise RuntimeError(f"Database error while saving book: {e}") from e

    def search(self, request: SearchRequest) -> Tuple[List[Book], int]:
        """
        Filtered, sorted, paginated query.

        Text matches title or author as a case-insensitive substring, or the
        ISBN exactly. Ties are broken by title then id so pages are stable.
        """
        clauses = []
        params: list = []

        query = request.normalized_query
        if query is not None:
            text_clause = "(LOWER(title) LIKE ? ESCAPE '\\' OR LOWER(author) LIKE ? ESCAPE '\\'"
            params.extend([like_pattern(query), like_pattern(query)])
            isbn = normalize_isbn(query)
            if isbn is not None:
                text_clause += " OR isbn = ?"
                params.append(isbn)
            clauses.append(text_clause + ")")

        category = request.normalized_category
        if category is not None:
            clauses.append("LOWER(category) = ?")
            params.append(category.lower())

        if request.min_rating is not None:
            clauses.append("average_rating >= ?")
            params.append(request.min_rating)

        if request.min_year is not None:
            clauses.append("publication_year >= ?")
            params.append(request.min_year)

        if request.max_year is not None:
            clauses.append("publication_year <= ?")
            params.append(request.max_year)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        column = _SORT_COLUMNS[request.sort]
        direction = "DESC" if request.direction == SortDirection.DESC else "ASC"
        # NULLs last regardless of direction
        order_by = f"({column} IS NULL), {column} {direction}, LOWER(title) ASC, id ASC"

        try:
            with self._get_connection() as conn:
                total = conn.execute(
                    f"SELECT COUNT(*) as cnt FROM books {where}", params
                ).fetchone()["cnt"]

                rows = conn.execute(
                    f"SELECT * FROM books {where} ORDER BY {order_by} LIMIT ? OFFSET ?",
                    params + [request.size, request.offset],
                ).fetchall()
        except sqlite3.Error as e:
            raise RuntimeError(f"Database error while searching books: {e}") from e

        return [self._row_to_book(row) for row in rows], total

    def find_existing_isbns(self, isbns: Iterable[str]) -> Set[str]:
        wanted = sorted({i for i in (normalize_isbn(x) for x in isbns) if i})
        if not wanted:
            return set()

        placeholders = ",".join("?" * len(wanted))
        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT isbn FROM books WHERE isbn IN ({placeholders})", wanted
            ).fetchall()
            return {row["isbn"] for row in rows}

    def find_similar(self, book: Book, limit: int) -> List[Book]:
        """Same author first, then same category; best rated first within each."""
        author = book.author.strip().lower()
        category = book.category.strip().lower() if book.category else None

        with self._get_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM books
                WHERE id != :id
                  AND (LOWER(author) = :author
                       OR (:category IS NOT NULL AND LOWER(category) = :category))
                ORDER BY (LOWER(author) = :author) DESC,
                         (average_rating IS NULL), average_rating DESC,
                         LOWER(title) ASC, id ASC
                LIMIT :limit
            """, {"id": str(book.id), "author": author, "category": category, "limit": limit}).fetchall()

            return [self._row_to_book(row) for row in rows]

    def list_categories(self) -> List[Tuple[str, int]]:
        """Categories grouped case-insensitively, each named by its smallest spelling."""
        with self._get_connection() as conn:
            rows = conn.execute("""
                SELECT MIN(TRIM(category)) as name, COUNT(*) as cnt FROM books
                WHERE category IS NOT NULL AND TRIM(category) != ''
                GROUP BY LOWER(TRIM(category))
                ORDER BY LOWER(TRIM(category))
            """).fetchall()
            return [(row["name"], row["cnt"]) for row in rows]
