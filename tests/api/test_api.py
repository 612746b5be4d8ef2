"""
HTTP-level tests for the v1 API.

The app runs against a temporary SQLite database and scripted providers
injected through app.dependency_overrides, so no network calls are made.
"""

import pytest
from uuid import uuid4

from fastapi.testclient import TestClient

from homelibrary.api.v1 import dependencies as deps
from homelibrary.domain.entities import Book
from homelibrary.domain.services import (
    BookSearchService,
    CatalogService,
    EnhancedSearchService,
    ExternalBookSearchService,
    LibraryService,
    RatingService,
)
from homelibrary.infrastructure.db.sqlite_book_catalog_repository import SqliteBookCatalogRepository
from homelibrary.infrastructure.db.sqlite_library_repository import SqliteLibraryRepository
from homelibrary.infrastructure.db.sqlite_rating_repository import SqliteRatingRepository
from homelibrary.infrastructure.db.sqlite_search_history_repository import SqliteSearchHistoryRepository
from homelibrary.main import app
from tests.fakes import FakeProvider, make_external

ALICE = {"X-User-Id": "alice"}


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def providers():
    return [
        FakeProvider("open_library", [
            make_external("Gatsby: A Graphic Novel", "open_library", author="Fred Fordham",
                          isbn="9780306406157"),
        ]),
        FakeProvider("google_books", [
            make_external("Gatsby's Girl", "google_books", author="Caroline Preston"),
        ]),
    ]


@pytest.fixture
def catalog(tmp_path):
    return SqliteBookCatalogRepository(tmp_path / "api.db")


@pytest.fixture
def gatsby(catalog):
    book = Book.create_new(
        title="The Great Gatsby",
        author="F. Scott Fitzgerald",
        isbn="9780743273565",
        page_count=180,
        publication_year=1925,
        category="Fiction",
    )
    catalog.save(book)
    return book


@pytest.fixture
def client(tmp_path, catalog, providers):
    db_path = tmp_path / "api.db"
    rating_repo = SqliteRatingRepository(db_path)
    library_repo = SqliteLibraryRepository(db_path)
    history_repo = SqliteSearchHistoryRepository(db_path)

    external = ExternalBookSearchService(providers, timeout_seconds=1.0)
    book_search = BookSearchService(catalog, rating_repo, history_repo)
    rating_service = RatingService(rating_repo, catalog)

    app.dependency_overrides.update({
        deps.get_catalog_repository: lambda: catalog,
        deps.get_external_search_service: lambda: external,
        deps.get_book_search_service: lambda: book_search,
        deps.get_enhanced_search_service: lambda: EnhancedSearchService(book_search, external, catalog),
        deps.get_catalog_service: lambda: CatalogService(catalog, external),
        deps.get_rating_service: lambda: rating_service,
        deps.get_library_service: lambda: LibraryService(library_repo, catalog, rating_repo, rating_service),
    })
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
    deps.reset_dependencies()


# ============================================================================
# SEARCH
# ============================================================================

class TestSearchEndpoints:
    def test_local_search_envelope_is_camel_case(self, client, gatsby):
        response = client.get("/api/v1/search/books", params={"q": "gatsby"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        page = body["data"]
        assert page["totalElements"] == 1
        assert page["hasNext"] is False
        assert page["content"][0]["title"] == "The Great Gatsby"
        assert page["content"][0]["publicationYear"] == 1925
        assert page["content"][0]["ratingCount"] == 0

    def test_invalid_sort_is_400(self, client):
        response = client.get("/api/v1/search/books", params={"sort": "popularity"})

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "Invalid sort field" in response.json()["message"]

    def test_type_errors_are_400(self, client):
        response = client.get("/api/v1/search/books", params={"page": "first"})

        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid request")

    def test_enhanced_search_falls_back_to_providers(self, client, gatsby):
        response = client.get(
            "/api/v1/search/books/enhanced", params={"q": "Gatsby", "minLocalResults": 5}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["totalLocalResults"] == 1
        assert data["totalExternalResults"] == 2
        assert data["totalCombinedResults"] == 3
        assert data["externalSearchPerformed"] is True
        assert data["externalApiHealthStatus"]["overallHealthy"] is True
        assert [b["source"] for b in data["externalResults"]] == ["open_library", "google_books"]

    def test_enhanced_search_threshold_met(self, client, gatsby, providers):
        response = client.get(
            "/api/v1/search/books/enhanced", params={"q": "Gatsby", "minLocalResults": 1}
        )

        data = response.json()["data"]
        assert data["externalSearchPerformed"] is False
        assert data["externalApiHealthStatus"] is None
        assert providers[0].calls == []

    def test_enhanced_search_threshold_out_of_range(self, client):
        response = client.get("/api/v1/search/books/enhanced", params={"q": "x", "minLocalResults": 51})

        assert response.status_code == 400

    def test_book_detail_and_not_found(self, client, gatsby):
        assert client.get(f"/api/v1/search/books/{gatsby.id}").json()["data"]["isbn"] == "9780743273565"

        missing = client.get("/api/v1/search/books/00000000-0000-0000-0000-000000000000")
        assert missing.status_code == 404
        assert missing.json()["success"] is False

    def test_suggestions_and_history(self, client, gatsby):
        client.get("/api/v1/search/books", params={"q": "Gatsby"}, headers=ALICE)

        assert client.get("/api/v1/search/books/suggestions", params={"q": "gat"}).json()["data"] == ["gatsby"]
        assert client.get("/api/v1/search/books/popular").json()["data"] == ["gatsby"]
        assert client.get("/api/v1/search/history", headers=ALICE).json()["data"] == ["gatsby"]

        cleared = client.delete("/api/v1/search/history", headers=ALICE)
        assert cleared.json()["data"] == 1

    def test_history_requires_user(self, client):
        response = client.get("/api/v1/search/history")

        assert response.status_code == 401
        assert response.json()["message"] == "X-User-Id header is required"

    def test_external_api_health(self, client):
        data = client.get("/api/v1/search/external-apis/health").json()["data"]

        assert data["overallHealthy"] is True
        assert set(data["providers"]) == {"open_library", "google_books"}

    def test_service_health(self, client, gatsby):
        data = client.get("/api/v1/health").json()["data"]

        assert data["status"] == "UP"
        assert data["catalogSize"] == 1
        assert data["externalSources"] == ["open_library", "google_books"]


# ============================================================================
# CATALOG
# ============================================================================

class TestBookEndpoints:
    def test_create_book(self, client):
        response = client.post("/api/v1/books", json={"title": "Dune", "author": "Frank Herbert",
                                                      "isbn": "978-0-441-17271-9", "publicationYear": 1965})

        assert response.status_code == 201
        assert response.json()["data"]["isbn"] == "9780441172719"
        assert response.json()["message"] == "Book created"

    def test_create_duplicate_is_409(self, client, gatsby):
        response = client.post("/api/v1/books", json={"title": "The Great Gatsby", "author": "F. Scott Fitzgerald"})

        assert response.status_code == 409

    def test_create_with_blank_title_is_400(self, client):
        assert client.post("/api/v1/books", json={"title": "", "author": "A"}).status_code == 400

    def test_validate_isbn(self, client, gatsby):
        in_catalog = client.get("/api/v1/books/validate-isbn/978-0-7432-7356-5").json()["data"]
        invalid = client.get("/api/v1/books/validate-isbn/12345").json()["data"]

        assert in_catalog["valid"] is True
        assert in_catalog["existsInCatalog"] is True
        assert in_catalog["book"]["title"] == "The Great Gatsby"
        assert invalid["valid"] is False
        assert invalid["errorMessage"] == "Invalid ISBN format or checksum"

    def test_import_by_isbn(self, client):
        first = client.post("/api/v1/books/import", json={"isbn": "9780306406157"})
        second = client.post("/api/v1/books/import", json={"isbn": "9780306406157"})

        assert first.status_code == 201
        assert first.json()["data"]["created"] is True
        assert second.status_code == 200
        assert second.json()["data"]["book"]["id"] == first.json()["data"]["book"]["id"]

    def test_import_unknown_isbn_is_404(self, client):
        assert client.post("/api/v1/books/import", json={"isbn": "9780451524935"}).status_code == 404

    def test_update_book_keeps_id_and_rating(self, client, gatsby):
        client.post(f"/api/v1/books/{gatsby.id}/ratings", json={"rating": 4}, headers=ALICE)

        response = client.put(f"/api/v1/books/{gatsby.id}", json={
            "title": "The Great Gatsby", "author": "F. Scott Fitzgerald",
            "isbn": "9780743273565", "category": "Classics", "pageCount": 208,
        })

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["id"] == str(gatsby.id)
        assert data["category"] == "Classics"
        assert data["pageCount"] == 208
        assert data["publicationYear"] is None
        assert data["averageRating"] == 4.0
        assert data["ratingCount"] == 1

    def test_update_unknown_book_is_404(self, client):
        response = client.put(f"/api/v1/books/{uuid4()}", json={"title": "T", "author": "A"})

        assert response.status_code == 404

    def test_update_onto_taken_isbn_is_409(self, client, gatsby):
        client.post("/api/v1/books", json={"title": "Dune", "author": "Frank Herbert", "isbn": "9780441172719"})

        response = client.put(f"/api/v1/books/{gatsby.id}", json={
            "title": "The Great Gatsby", "author": "F. Scott Fitzgerald", "isbn": "9780441172719",
        })

        assert response.status_code == 409

    def test_categories(self, client, gatsby):
        client.post("/api/v1/books", json={"title": "Dune", "author": "Frank Herbert", "category": "Science Fiction"})
        client.post("/api/v1/books", json={"title": "Emma", "author": "Jane Austen", "category": "fiction"})

        response = client.get("/api/v1/books/categories")

        assert response.status_code == 200
        assert response.json()["data"] == [
            {"name": "Fiction", "bookCount": 2},
            {"name": "Science Fiction", "bookCount": 1},
        ]


# ============================================================================
# LIBRARY
# ============================================================================

class TestLibraryEndpoints:
    def test_requires_user(self, client, gatsby):
        assert client.get("/api/v1/library/books").status_code == 401
        assert client.post(f"/api/v1/library/books/{gatsby.id}").status_code == 401

    def test_add_without_body_defaults_to_unread(self, client, gatsby):
        response = client.post(f"/api/v1/library/books/{gatsby.id}", headers=ALICE)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "UNREAD"
        assert data["bookId"] == str(gatsby.id)
        assert data["book"]["title"] == "The Great Gatsby"

    def test_duplicate_add_is_409(self, client, gatsby):
        client.post(f"/api/v1/library/books/{gatsby.id}", headers=ALICE)

        response = client.post(f"/api/v1/library/books/{gatsby.id}", headers=ALICE)

        assert response.status_code == 409
        assert response.json() == {"success": False, "message": "Book is already in your library"}

    def test_lowercase_status_is_400(self, client, gatsby):
        response = client.post(f"/api/v1/library/books/{gatsby.id}", json={"status": "read"}, headers=ALICE)

        assert response.status_code == 400
        assert client.get("/api/v1/library/books", params={"status": "read"}, headers=ALICE).status_code == 400

    def test_update_with_rating(self, client, gatsby):
        client.post(f"/api/v1/library/books/{gatsby.id}", headers=ALICE)

        response = client.put(
            f"/api/v1/library/books/{gatsby.id}",
            json={"status": "READ", "currentPage": 180, "userRating": 5},
            headers=ALICE,
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["status"] == "READ"
        assert data["userRating"] == 5
        assert data["dateCompleted"] is not None
        assert data["book"]["averageRating"] == 5.0

    def test_page_beyond_count_is_400(self, client, gatsby):
        response = client.post(f"/api/v1/library/books/{gatsby.id}", json={"currentPage": 500}, headers=ALICE)

        assert response.status_code == 400

    def test_list_statistics_and_remove(self, client, gatsby):
        client.post(f"/api/v1/library/books/{gatsby.id}", json={"status": "READING"}, headers=ALICE)

        listing = client.get("/api/v1/library/books", params={"status": "READING"}, headers=ALICE).json()["data"]
        stats = client.get("/api/v1/library/statistics", headers=ALICE).json()["data"]
        removed = client.delete(f"/api/v1/library/books/{gatsby.id}", headers=ALICE)
        missing = client.get(f"/api/v1/library/books/{gatsby.id}", headers=ALICE)

        assert listing["totalElements"] == 1
        assert stats["total"] == 1
        assert stats["byStatus"]["READING"] == 1
        assert stats["byStatus"]["DNF"] == 0
        assert removed.status_code == 200
        assert missing.status_code == 404

    def test_add_unknown_book_is_404(self, client):
        response = client.post("/api/v1/library/books/00000000-0000-0000-0000-000000000000", headers=ALICE)

        assert response.status_code == 404


# ============================================================================
# RATINGS
# ============================================================================

class TestRatingEndpoints:
    def test_create_then_update(self, client, gatsby):
        url = f"/api/v1/books/{gatsby.id}/ratings"

        created = client.post(url, json={"rating": 4, "review": "Lovely prose"}, headers=ALICE)
        updated = client.post(url, json={"rating": 2}, headers=ALICE)

        assert created.status_code == 201
        assert updated.status_code == 200
        assert updated.json()["data"]["id"] == created.json()["data"]["id"]
        assert client.get(f"/api/v1/search/books/{gatsby.id}").json()["data"]["averageRating"] == 2.0

    def test_out_of_range_rating_is_400(self, client, gatsby):
        response = client.post(f"/api/v1/books/{gatsby.id}/ratings", json={"rating": 6}, headers=ALICE)

        assert response.status_code == 400

    def test_update_missing_rating_is_404(self, client, gatsby):
        response = client.put(f"/api/v1/books/{gatsby.id}/ratings", json={"rating": 3}, headers=ALICE)

        assert response.status_code == 404

    def test_statistics_and_listing(self, client, gatsby):
        url = f"/api/v1/books/{gatsby.id}/ratings"
        client.post(url, json={"rating": 5}, headers=ALICE)
        client.post(url, json={"rating": 3}, headers={"X-User-Id": "bob"})

        stats = client.get(f"{url}/statistics").json()["data"]
        listing = client.get(url).json()["data"]
        mine = client.get(f"{url}/my", headers=ALICE).json()["data"]

        assert stats["ratingCount"] == 2
        assert stats["averageRating"] == 4.0
        assert stats["distribution"] == {"1": 0, "2": 0, "3": 1, "4": 0, "5": 1}
        assert listing["totalElements"] == 2
        assert mine["rating"] == 5

    def test_delete_resets_aggregate(self, client, gatsby):
        url = f"/api/v1/books/{gatsby.id}/ratings"
        client.post(url, json={"rating": 5}, headers=ALICE)

        assert client.delete(url, headers=ALICE).status_code == 200
        assert client.delete(url, headers=ALICE).status_code == 404
        assert client.get(f"/api/v1/search/books/{gatsby.id}").json()["data"]["averageRating"] is None


    def test_users_ratings_lists_only_the_caller(self, client, gatsby):
        client.post(f"/api/v1/books/{gatsby.id}/ratings", json={"rating": 5, "review": "Classic"}, headers=ALICE)
        client.post(f"/api/v1/books/{gatsby.id}/ratings", json={"rating": 2}, headers={"X-User-Id": "bob"})

        page = client.get("/api/v1/users/ratings", params={"size": 5}, headers=ALICE).json()["data"]

        assert page["totalElements"] == 1
        assert page["size"] == 5
        assert page["content"][0]["bookId"] == str(gatsby.id)
        assert page["content"][0]["review"] == "Classic"
        assert client.get("/api/v1/users/ratings").status_code == 401


class TestErrorMapping:
    def test_unexpected_error_is_500(self, client):
        def broken():
            raise KeyError("boom")

        app.dependency_overrides[deps.get_book_search_service] = broken

        response = client.get("/api/v1/search/books")

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "An unexpected error occurred"}

    def test_runtime_error_is_503(self, client):
        def unavailable():
            raise RuntimeError("database is locked")

        app.dependency_overrides[deps.get_book_search_service] = unavailable

        response = client.get("/api/v1/search/books")

        assert response.status_code == 503
        assert "database is locked" not in response.json()["message"]
