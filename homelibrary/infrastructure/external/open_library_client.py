"""
OpenLibrary search API client implementing the ExternalBooksProvider port.

Uses https://openlibrary.org/search.json. Search docs map to ExternalBook:

    title                       -> title
    author_name (joined ", ")   -> author ("Unknown" when missing)
    isbn[]                      -> isbn (first 13-character value, else the first)
    first_publish_year          -> publication_year
    publisher[0]                -> publisher
    number_of_pages_median      -> page_count
    subject[0]                  -> category
    cover_i                     -> {covers}/b/id/{cover_i}-M.jpg

Search results carry no description.
"""

import logging
from typing import Any, List, Optional

import requests

from homelibrary.domain.entities import ExternalBook
from homelibrary.domain.ports import ExternalBooksProvider

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ",".join([
    "key",
    "title",
    "author_name",
    "isbn",
    "first_publish_year",
    "publisher",
    "number_of_pages_median",
    "cover_i",
    "subject",
])


class OpenLibraryClient(ExternalBooksProvider):
    """
    OpenLibrary client.

    Usage:
        client = OpenLibraryClient(timeout_seconds=5)
        books = client.search_books("dune", max_results=10)

        # Testing (with fake session)
        client = OpenLibraryClient(session=fake_session)
    """

    BASE_URL = "https://openlibrary.org"
    COVERS_URL = "https://covers.openlibrary.org"
    MAX_RESULTS_LIMIT = 100
    ISBN_LOOKUP_LIMIT = 10

    def __init__(
        self,
        base_url: str = BASE_URL,
        covers_url: str = COVERS_URL,
        timeout_seconds: float = 5.0,
        session: Optional[Any] = None,
    ) -> None:
        self._search_url = f"{base_url.rstrip('/')}/search.json"
        self._covers_url = covers_url.rstrip("/")
        self._timeout = timeout_seconds
        if session is None:
            session = requests.Session()
            session.headers.update({
                "User-Agent": "HomeLibrary/1.0",
                "Accept": "application/json",
            })
        self._session = session

    def get_source_name(self) -> str:
        return "open_library"

    def search_books(self, query: str, max_results: int = 10) -> List[ExternalBook]:
        """
        Free-text search.

        Raises:
            ValueError: If query is empty or blank
            RuntimeError: If API request fails
        """
        if not query or not query.strip():
            raise ValueError("query cannot be empty")
        return self._search({"q": query.strip()}, max_results)

    def search_by_title(self, title: str, max_results: int = 10) -> List[ExternalBook]:
        if not title or not title.strip():
            raise ValueError("title cannot be empty")
        return self._search({"title": title.strip()}, max_results)

    def search_by_author(self, author: str, max_results: int = 10) -> List[ExternalBook]:
        if not author or not author.strip():
            raise ValueError("author cannot be empty")
        return self._search({"author": author.strip()}, max_results)

    def search_by_isbn(self, isbn: str) -> List[ExternalBook]:
        if not isbn or not isbn.strip():
            raise ValueError("isbn cannot be empty")
        clean = isbn.replace("-", "").replace(" ", "").strip()
        return self._search({"isbn": clean}, self.ISBN_LOOKUP_LIMIT)

    def check_health(self) -> bool:
        try:
            self._search({"q": "test"}, 1)
            return True
        except Exception as e:
            logger.debug(f"OpenLibrary health probe failed: {e}")
            return False

    # =========================================================================
    # Private helper methods
    # =========================================================================

    def _search(self, criteria: dict, max_results: int) -> List[ExternalBook]:
        params = dict(criteria)
        params["fields"] = SEARCH_FIELDS
        params["limit"] = max(1, min(max_results, self.MAX_RESULTS_LIMIT))  # OpenLibrary max is 100

        logger.debug(f"OpenLibrary request: {criteria} limit={params['limit']}")

        try:
            response = self._session.get(self._search_url, params=params, timeout=self._timeout)
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            raise RuntimeError(f"OpenLibrary API request failed: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("docs", []), list):
            raise RuntimeError("OpenLibrary API returned a malformed payload")

        books = []
        for doc in data.get("docs", []):
            book = self._parse_doc(doc)
            if book is not None:
                books.append(book)

        logger.debug(f"OpenLibrary returned {len(books)} books for {criteria}")
        return books

    def _parse_doc(self, doc: dict) -> Optional[ExternalBook]:
        try:
            title = doc.get("title")
            if not title or not str(title).strip():
                return None

            authors = doc.get("author_name") or ["Unknown"]
            publishers = doc.get("publisher") or []
            subjects = doc.get("subject") or []

            year = doc.get("first_publish_year")
            pages = doc.get("number_of_pages_median")
            cover_id = doc.get("cover_i")

            return ExternalBook(
                title=str(title).strip(),
                author=", ".join(authors),
                source=self.get_source_name(),
                source_id=doc.get("key"),
                isbn=self._pick_isbn(doc.get("isbn") or []),
                publisher=publishers[0] if publishers else None,
                publication_year=year if isinstance(year, int) else None,
                page_count=pages if isinstance(pages, int) else None,
                cover_image_url=(
                    f"{self._covers_url}/b/id/{cover_id}-M.jpg" if isinstance(cover_id, int) else None
                ),
                category=subjects[0] if subjects else None,
            )
        except Exception as e:
            logger.debug(f"Skipping unparseable OpenLibrary doc: {e}")
            return None

    @staticmethod
    def _pick_isbn(isbns: list) -> Optional[str]:
        if not isbns:
            return None
        return next((i for i in isbns if len(i) == 13), isbns[0])
