"""
Tests for ExternalBookSearchService.

These tests verify:
1. Results are merged in provider order and deduplicated by ISBN and title
2. A failing or slow provider never fails the lookup
3. Per-provider health is reported for every lookup
4. ISBN lookups fall through the providers in order
"""

import pytest

from homelibrary.domain.services.external_search_service import (
    ExternalBookSearchService,
    normalize_title,
)
from tests.fakes import FakeProvider, make_external


class TestNormalizeTitle:
    def test_punctuation_and_case(self):
        assert normalize_title("The Great Gatsby!") == normalize_title("the  great gatsby")


class TestSearchMerging:
    def test_results_follow_provider_order(self):
        ol = FakeProvider("open_library", [make_external("Dune", "open_library")])
        gb = FakeProvider("google_books", [make_external("Dune Messiah", "google_books")])
        service = ExternalBookSearchService([ol, gb])

        outcome = service.search("dune", limit=10)

        assert [b.title for b in outcome.results] == ["Dune", "Dune Messiah"]
        assert [b.source for b in outcome.results] == ["open_library", "google_books"]

    def test_duplicates_by_isbn_keep_first_provider(self):
        ol = FakeProvider("open_library", [make_external("Gatsby", "open_library", isbn="9780743273565")])
        gb = FakeProvider(
            "google_books",
            [make_external("The Great Gatsby (Annotated)", "google_books", isbn="978-0-7432-7356-5")],
        )
        service = ExternalBookSearchService([ol, gb])

        outcome = service.search("gatsby")

        assert len(outcome.results) == 1
        assert outcome.results[0].source == "open_library"

    def test_duplicates_by_normalized_title(self):
        ol = FakeProvider("open_library", [make_external("The Great Gatsby", "open_library")])
        gb = FakeProvider("google_books", [make_external("the great gatsby.", "google_books")])
        service = ExternalBookSearchService([ol, gb])

        outcome = service.search("gatsby")

        assert len(outcome.results) == 1

    def test_limit_truncates_merged_results(self):
        ol = FakeProvider("open_library", [make_external(f"Book {i}", "open_library") for i in range(5)])
        gb = FakeProvider("google_books", [make_external(f"Other {i}", "google_books") for i in range(5)])
        service = ExternalBookSearchService([ol, gb])

        outcome = service.search("book", limit=3)

        assert len(outcome.results) == 3
        assert ol.calls == [("query", "book", 3)]

    def test_per_provider_request_is_capped(self):
        ol = FakeProvider("open_library")
        service = ExternalBookSearchService([ol])

        service.search("book", limit=40)

        assert ol.calls == [("query", "book", ExternalBookSearchService.MAX_RESULTS_PER_PROVIDER)]

    def test_title_and_author_kinds(self):
        ol = FakeProvider("open_library")
        service = ExternalBookSearchService([ol])

        service.search("Dune", kind="title")
        service.search("Herbert", kind="author")

        assert [c[0] for c in ol.calls] == ["title", "author"]

    def test_unknown_kind_is_rejected(self):
        with pytest.raises(ValueError, match="kind"):
            ExternalBookSearchService([FakeProvider("open_library")]).search("x", kind="publisher")


class TestBlankQueries:
    @pytest.mark.parametrize("query", [None, "", "   "])
    def test_blank_query_makes_no_calls(self, query):
        ol = FakeProvider("open_library")
        service = ExternalBookSearchService([ol])

        outcome = service.search(query)

        assert outcome.results == []
        assert outcome.health.providers == {}
        assert ol.calls == []

    def test_no_providers(self):
        service = ExternalBookSearchService([])

        assert service.is_enabled is False
        assert service.search("dune").results == []


class TestFailureIsolation:
    def test_failing_provider_is_reported_and_others_still_answer(self):
        ol = FakeProvider("open_library", error=RuntimeError("HTTP 500"))
        gb = FakeProvider("google_books", [make_external("Dune", "google_books")])
        service = ExternalBookSearchService([ol, gb])

        outcome = service.search("dune")

        assert [b.title for b in outcome.results] == ["Dune"]
        assert outcome.health.providers["google_books"].healthy is True
        assert outcome.health.providers["open_library"].healthy is False
        assert "Service unavailable" in outcome.health.providers["open_library"].message
        assert outcome.health.overall_healthy is False

    def test_slow_provider_times_out(self):
        slow = FakeProvider("open_library", [make_external("Late", "open_library")], delay=2.0)
        fast = FakeProvider("google_books", [make_external("Dune", "google_books")])
        service = ExternalBookSearchService([slow, fast], timeout_seconds=0.2)

        outcome = service.search("dune")

        assert [b.title for b in outcome.results] == ["Dune"]
        status = outcome.health.providers["open_library"]
        assert status.healthy is False
        assert "Timed out" in status.message

    def test_all_providers_failing_gives_empty_results(self):
        service = ExternalBookSearchService([
            FakeProvider("open_library", error=RuntimeError("down")),
            FakeProvider("google_books", error=RuntimeError("down")),
        ])

        outcome = service.search("dune")

        assert outcome.results == []
        assert outcome.health.overall_healthy is False

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            ExternalBookSearchService([], timeout_seconds=0)


class TestSearchByIsbn:
    def test_falls_through_to_next_provider(self):
        ol = FakeProvider("open_library", error=RuntimeError("down"))
        gb = FakeProvider("google_books", [make_external("Gatsby", "google_books", isbn="9780743273565")])
        service = ExternalBookSearchService([ol, gb])

        results = service.search_by_isbn("978-0-7432-7356-5")

        assert [b.source for b in results] == ["google_books"]
        assert ol.calls[0] == ("isbn", "9780743273565", 10)

    def test_unknown_isbn(self):
        service = ExternalBookSearchService([FakeProvider("open_library")])

        assert service.search_by_isbn("9780743273565") == []

    def test_blank_isbn(self):
        assert ExternalBookSearchService([FakeProvider("open_library")]).search_by_isbn("") == []


class TestHealthStatus:
    def test_reports_every_provider(self):
        service = ExternalBookSearchService([
            FakeProvider("open_library", healthy=True),
            FakeProvider("google_books", healthy=False),
        ])

        health = service.get_health_status()

        assert health.providers["open_library"].healthy is True
        assert health.providers["open_library"].message == "Service operational"
        assert health.providers["google_books"].healthy is False
        assert health.overall_healthy is False

    def test_source_names(self):
        service = ExternalBookSearchService([FakeProvider("open_library"), FakeProvider("google_books")])

        assert service.get_source_names() == ["open_library", "google_books"]
