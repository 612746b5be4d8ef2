"""
Google Books API client implementing the ExternalBooksProvider port.

=============================================================================
NOTES: Adapter
=============================================================================

This class translates Google Books volumes into ExternalBook entities:

    volumeInfo.title                  -> title
    volumeInfo.authors (joined ", ")  -> author ("Unknown" when missing)
    industryIdentifiers               -> isbn (ISBN_13 preferred over ISBN_10)
    volumeInfo.publishedDate[:4]      -> publication_year
    volumeInfo.pageCount              -> page_count
    volumeInfo.publisher              -> publisher
    volumeInfo.categories[0]          -> category
    imageLinks.thumbnail (https)      -> cover_image_url

Field searches use Google's query prefixes (intitle:, inauthor:, isbn:).

The constructor accepts an optional `session`: production code uses
requests.Session(), tests inject a fake session with canned responses.
=============================================================================
"""

import logging
from typing import Any, List, Optional

import requests

from homelibrary.domain.entities import ExternalBook
from homelibrary.domain.ports import ExternalBooksProvider

logger = logging.getLogger(__name__)


class GoogleBooksClient(ExternalBooksProvider):
    """
    Google Books API client.

    Usage:
        # Production
        client = GoogleBooksClient(api_key="your-api-key", timeout_seconds=5)
        books = client.search_books("the great gatsby", max_results=10)

        # Testing (with fake session)
        client = GoogleBooksClient(session=fake_session)
    """

    BASE_URL = "https://www.googleapis.com/books/v1"
    MAX_RESULTS_LIMIT = 40

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = BASE_URL,
        timeout_seconds: float = 5.0,
        session: Optional[Any] = None,
    ) -> None:
        """
        Initialize the Google Books client.

        Args:
            api_key: Optional Google API key for higher rate limits.
                    Without a key, requests are limited but still work.
            base_url: API root, overridable for testing
            timeout_seconds: Timeout passed to every HTTP call
            session: Optional HTTP session for dependency injection.
                    If None, creates a new requests.Session().
        """
        self._api_key = api_key
        self._volumes_url = f"{base_url.rstrip('/')}/volumes"
        self._timeout = timeout_seconds
        if session is None:
            session = requests.Session()
            session.headers.update({
                "User-Agent": "HomeLibrary/1.0",
                "Accept": "application/json",
            })
        self._session = session

    def get_source_name(self) -> str:
        return "google_books"

    def search_books(self, query: str, max_results: int = 10) -> List[ExternalBook]:
        """
        Free-text search.

        Raises:
            ValueError: If query is empty or blank
            RuntimeError: If API request fails
        """
        if not query or not query.strip():
            raise ValueError("query cannot be empty")
        return self._search(query.strip(), max_results)

    def search_by_title(self, title: str, max_results: int = 10) -> List[ExternalBook]:
        if not title or not title.strip():
            raise ValueError("title cannot be empty")
        return self._search(f"intitle:{title.strip()}", max_results)

    def search_by_author(self, author: str, max_results: int = 10) -> List[ExternalBook]:
        if not author or not author.strip():
            raise ValueError("author cannot be empty")
        return self._search(f"inauthor:{author.strip()}", max_results)

    def search_by_isbn(self, isbn: str) -> List[ExternalBook]:
        if not isbn or not isbn.strip():
            raise ValueError("isbn cannot be empty")
        clean = isbn.replace("-", "").replace(" ", "").strip()
        return self._search(f"isbn:{clean}", 1)

    def check_health(self) -> bool:
        try:
            self._search("test", 1)
            return True
        except Exception as e:
            logger.debug(f"Google Books health probe failed: {e}")
            return False

    # =========================================================================
    # Private helper methods
    # =========================================================================

    def _search(self, q: str, max_results: int) -> List[ExternalBook]:
        params = {
            "q": q,
            "maxResults": max(1, min(max_results, self.MAX_RESULTS_LIMIT)),  # API limit is 40
        }
        if self._api_key:
            params["key"] = self._api_key

        logger.debug(f"Google Books request: q='{q}' maxResults={params['maxResults']}")

        try:
            response = self._session.get(self._volumes_url, params=params, timeout=self._timeout)
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            raise RuntimeError(f"Google Books API request failed: {e}") from e

        if not isinstance(data, dict):
            raise RuntimeError("Google Books API returned a malformed payload")

        books = []
        for item in data.get("items") or []:
            book = self._parse_volume(item)
            if book is not None:
                books.append(book)

        logger.debug(f"Google Books returned {len(books)} books for '{q}'")
        return books

    def _parse_volume(self, volume: dict) -> Optional[ExternalBook]:
        """
        Parse a Google Books volume JSON object into an ExternalBook.

        Returns None when the volume has no title or cannot be parsed.
        """
        try:
            volume_info = volume.get("volumeInfo") or {}

            title = volume_info.get("title")
            if not title or not str(title).strip():
                return None

            authors = volume_info.get("authors") or ["Unknown"]

            categories = volume_info.get("categories") or []
            image_links = volume_info.get("imageLinks") or {}
            thumbnail = image_links.get("thumbnail")
            if thumbnail:
                thumbnail = thumbnail.replace("http://", "https://")

            page_count = volume_info.get("pageCount")

            return ExternalBook(
                title=str(title).strip(),
                author=", ".join(authors),
                source=self.get_source_name(),
                source_id=volume.get("id"),
                isbn=self._extract_isbn(volume_info.get("industryIdentifiers") or []),
                publisher=volume_info.get("publisher"),
                publication_year=self._parse_year(volume_info.get("publishedDate")),
                page_count=page_count if isinstance(page_count, int) else None,
                description=volume_info.get("description"),
                cover_image_url=thumbnail,
                category=categories[0] if categories else None,
            )
        except Exception as e:
            logger.debug(f"Skipping unparseable Google Books volume: {e}")
            return None

    @staticmethod
    def _extract_isbn(identifiers: list) -> Optional[str]:
        by_type = {i.get("type"): i.get("identifier") for i in identifiers if isinstance(i, dict)}
        return by_type.get("ISBN_13") or by_type.get("ISBN_10")

    @staticmethod
    def _parse_year(date_str: Optional[str]) -> Optional[int]:
        """Google returns 'YYYY', 'YYYY-MM' or 'YYYY-MM-DD'; only the year is kept."""
        if not date_str or len(date_str) < 4:
            return None
        try:
            return int(date_str[:4])
        except ValueError:
            return None
