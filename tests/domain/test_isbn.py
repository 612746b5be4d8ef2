"""
Tests for ISBN normalization and checksum validation.
"""

import pytest

from homelibrary.domain.utils import is_valid_isbn, normalize_isbn


class TestNormalizeIsbn:
    @pytest.mark.parametrize(
        "raw",
        ["978-0-7432-7356-5", "978 0743273565", "9780743273565", " 978-0743273565 "],
    )
    def test_punctuation_is_stripped(self, raw):
        assert normalize_isbn(raw) == "9780743273565"

    def test_lowercase_check_digit_is_uppercased(self):
        assert normalize_isbn("0-8044-2957-x") == "080442957X"

    def test_none_and_empty(self):
        assert normalize_isbn(None) is None
        assert normalize_isbn("---") is None


class TestIsValidIsbn:
    @pytest.mark.parametrize(
        "isbn",
        ["9780743273565", "978-0-451-52493-5", "0743273567", "080442957X"],
    )
    def test_valid(self, isbn):
        assert is_valid_isbn(isbn) is True

    @pytest.mark.parametrize(
        "isbn",
        ["9780743273566", "0743273568", "12345", "X743273567", "978074327356X", None, ""],
    )
    def test_invalid(self, isbn):
        assert is_valid_isbn(isbn) is False
