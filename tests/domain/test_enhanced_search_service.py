"""
Tests for EnhancedSearchService: local search with external fallback.

These tests verify:
1. The external lookup runs only when local results are below the threshold
2. Local results are returned untouched even when every provider fails
3. External results already in the catalog are dropped
4. The health snapshot is present only when the lookup was attempted
"""

import pytest

from homelibrary.domain.exceptions import SearchFailedError, ValidationError
from homelibrary.domain.services import (
    BookSearchService,
    EnhancedSearchService,
    ExternalBookSearchService,
)
from homelibrary.domain.value_objects import SearchRequest
from tests.fakes import (
    FakeProvider,
    InMemoryCatalogRepository,
    InMemoryRatingRepository,
    InMemorySearchHistoryRepository,
    make_book,
    make_external,
)


def build_service(catalog, providers):
    book_search = BookSearchService(catalog, InMemoryRatingRepository(), InMemorySearchHistoryRepository())
    external = ExternalBookSearchService(providers, timeout_seconds=0.2)
    return EnhancedSearchService(book_search, external, catalog)


@pytest.fixture
def gatsby_catalog():
    return InMemoryCatalogRepository([
        make_book("The Great Gatsby", "F. Scott Fitzgerald", isbn="9780743273565"),
    ])


class TestFallbackDecision:
    def test_few_local_results_trigger_external_lookup(self, gatsby_catalog):
        ol = FakeProvider("open_library", [make_external("Gatsby: A Graphic Novel", "open_library")])
        gb = FakeProvider("google_books", [make_external("Gatsby's Girl", "google_books")])
        service = build_service(gatsby_catalog, [ol, gb])

        response = service.search_with_external_fallback(
            SearchRequest(query="Gatsby"), min_local_results=5
        )

        assert response.total_local_results == 1
        assert response.total_external_results == 2
        assert response.total_combined_results == 3
        assert response.external_search_performed is True
        assert response.external_api_health_status.overall_healthy is True
        assert ol.calls == [("query", "Gatsby", 20)]

    def test_enough_local_results_skip_external_lookup(self, gatsby_catalog):
        ol = FakeProvider("open_library", [make_external("Anything", "open_library")])
        service = build_service(gatsby_catalog, [ol])

        response = service.search_with_external_fallback(
            SearchRequest(query="Gatsby"), min_local_results=1
        )

        assert response.external_search_performed is False
        assert response.external_results == []
        assert response.external_api_health_status is None
        assert ol.calls == []

    def test_zero_threshold_never_searches_externally(self):
        ol = FakeProvider("open_library", [make_external("Dune", "open_library")])
        service = build_service(InMemoryCatalogRepository(), [ol])

        response = service.search_with_external_fallback(SearchRequest(query="dune"), min_local_results=0)

        assert response.external_search_performed is False
        assert ol.calls == []

    def test_include_external_false(self):
        ol = FakeProvider("open_library", [make_external("Dune", "open_library")])
        service = build_service(InMemoryCatalogRepository(), [ol])

        response = service.search_with_external_fallback(SearchRequest(query="dune"), include_external=False)

        assert response.external_search_performed is False
        assert ol.calls == []

    def test_no_query_text_skips_external_lookup(self):
        ol = FakeProvider("open_library", [make_external("Dune", "open_library")])
        service = build_service(InMemoryCatalogRepository(), [ol])

        response = service.search_with_external_fallback(SearchRequest(category="Fiction"))

        assert response.external_search_performed is False
        assert ol.calls == []

    def test_disabled_external_search(self):
        service = build_service(InMemoryCatalogRepository(), [])

        response = service.search_with_external_fallback(SearchRequest(query="dune"))

        assert response.external_search_performed is False
        assert response.external_api_health_status is None

    def test_max_external_results_caps_results(self):
        ol = FakeProvider("open_library", [make_external(f"Dune {i}", "open_library") for i in range(10)])
        service = build_service(InMemoryCatalogRepository(), [ol])

        response = service.search_with_external_fallback(SearchRequest(query="dune"), max_external_results=4)

        assert response.total_external_results == 4


class TestDegradation:
    def test_provider_failure_keeps_local_results(self, gatsby_catalog):
        ol = FakeProvider("open_library", error=RuntimeError("HTTP 503"))
        slow = FakeProvider("google_books", [make_external("Late", "google_books")], delay=2.0)
        service = build_service(gatsby_catalog, [ol, slow])

        response = service.search_with_external_fallback(SearchRequest(query="Gatsby"))

        assert response.total_local_results == 1
        assert response.local_results.content[0].book.title == "The Great Gatsby"
        assert response.external_results == []
        assert response.external_search_performed is True
        health = response.external_api_health_status
        assert health.overall_healthy is False
        assert health.providers["open_library"].healthy is False
        assert "Timed out" in health.providers["google_books"].message

    def test_local_search_failure_is_surfaced(self):
        catalog = InMemoryCatalogRepository(fail_search=True)
        service = build_service(catalog, [FakeProvider("open_library")])

        with pytest.raises(SearchFailedError):
            service.search_with_external_fallback(SearchRequest(query="dune"))


class TestCatalogFiltering:
    def test_external_books_already_in_catalog_are_dropped(self):
        catalog = InMemoryCatalogRepository([
            make_book("Dune", "Frank Herbert", isbn="9780441172719"),
        ])
        ol = FakeProvider("open_library", [
            make_external("Dune (Deluxe Edition)", "open_library", isbn="978-0-441-17271-9"),
            make_external("Dune Messiah", "open_library", isbn="9780593098233"),
        ])
        service = build_service(catalog, [ol])

        response = service.search_with_external_fallback(SearchRequest(query="dune"))

        assert [b.title for b in response.external_results] == ["Dune Messiah"]
        assert catalog.isbn_lookups == [{"9780441172719", "9780593098233"}]

    def test_results_without_isbn_skip_the_catalog_check(self):
        catalog = InMemoryCatalogRepository()
        ol = FakeProvider("open_library", [make_external("Unknown Edition", "open_library")])
        service = build_service(catalog, [ol])

        response = service.search_with_external_fallback(SearchRequest(query="edition"))

        assert response.total_external_results == 1
        assert catalog.isbn_lookups == []


class TestThresholdValidation:
    @pytest.mark.parametrize("min_local", [-1, 51])
    def test_min_local_results_range(self, min_local):
        service = build_service(InMemoryCatalogRepository(), [])

        with pytest.raises(ValidationError):
            service.search_with_external_fallback(SearchRequest(query="x"), min_local_results=min_local)

    @pytest.mark.parametrize("max_external", [0, 41])
    def test_max_external_results_range(self, max_external):
        service = build_service(InMemoryCatalogRepository(), [])

        with pytest.raises(ValidationError):
            service.search_with_external_fallback(SearchRequest(query="x"), max_external_results=max_external)
