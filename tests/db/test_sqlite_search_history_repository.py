"""
Tests for SqliteSearchHistoryRepository.
"""
import pytest

from homelibrary.domain.entities import SearchHistoryEntry
from homelibrary.infrastructure.db.sqlite_search_history_repository import SqliteSearchHistoryRepository


@pytest.fixture
def repo(tmp_path):
    return SqliteSearchHistoryRepository(tmp_path / "history.db")


def record(repo, query, user_id=None, result_count=1):
    repo.record(SearchHistoryEntry(query=query, result_count=result_count, user_id=user_id))


class TestPopularQueries:
    def test_queries_are_normalized_and_counted(self, repo):
        record(repo, "Dune")
        record(repo, "  dune ")
        record(repo, "Gatsby")

        assert repo.popular_queries(10) == ["dune", "gatsby"]

    def test_ties_favour_most_recent(self, repo):
        record(repo, "dune")
        record(repo, "gatsby")

        assert repo.popular_queries(10) == ["gatsby", "dune"]

    def test_limit(self, repo):
        for q in ["a", "b", "c"]:
            record(repo, q)

        assert len(repo.popular_queries(2)) == 2


class TestSuggestions:
    def test_substring_match(self, repo):
        for q in ["dune", "dune messiah", "children of dune", "gatsby"]:
            record(repo, q)

        assert set(repo.suggestions("DUNE", 10)) == {"dune", "dune messiah", "children of dune"}

    def test_wildcards_are_literal(self, repo):
        record(repo, "100% human")
        record(repo, "1000 years")

        assert repo.suggestions("100%", 10) == ["100% human"]


class TestUserHistory:
    def test_recent_distinct_queries(self, repo):
        record(repo, "dune", user_id="alice")
        record(repo, "gatsby", user_id="alice")
        record(repo, "dune", user_id="alice")
        record(repo, "1984", user_id="bob")

        assert repo.recent_for_user("alice", 10) == ["dune", "gatsby"]

    def test_delete_for_user(self, repo):
        record(repo, "dune", user_id="alice")
        record(repo, "gatsby", user_id="alice")
        record(repo, "1984", user_id="bob")

        assert repo.delete_for_user("alice") == 2
        assert repo.recent_for_user("alice", 10) == []
        assert repo.recent_for_user("bob", 10) == ["1984"]
        assert repo.popular_queries(10) == ["1984"]
