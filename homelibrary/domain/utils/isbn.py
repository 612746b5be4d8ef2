"""
ISBN helpers shared by the catalog, the providers and the search services.

=============================================================================
NOTES: Normalized form
=============================================================================

Every ISBN stored or compared by the service is in normalized form:
digits only, with an optional trailing uppercase 'X' (ISBN-10 check digit).
"978-0-7432-7356-5", "978 0743273565" and "9780743273565" all normalize
to "9780743273565".

Comparison (deduplication across providers, local-vs-external filtering)
always goes through normalize_isbn() so punctuation never causes a miss.
=============================================================================
"""

import re
from typing import Optional

_NON_ISBN_CHARS = re.compile(r"[^0-9X]")


def normalize_isbn(isbn: Optional[str]) -> Optional[str]:
    """
    Strip everything except digits and 'X'.

    Returns None for None or for strings with no ISBN characters left.
    """
    if isbn is None:
        return None
    cleaned = _NON_ISBN_CHARS.sub("", isbn.upper())
    return cleaned or None


def is_valid_isbn(isbn: Optional[str]) -> bool:
    """
    Check ISBN-10 / ISBN-13 format and checksum.

    Args:
        isbn: Raw or normalized ISBN

    Returns:
        True if the normalized value is a well-formed ISBN with a valid
        check digit
    """
    cleaned = normalize_isbn(isbn)
    if cleaned is None:
        return False

    if len(cleaned) == 10:
        return _is_valid_isbn10(cleaned)
    if len(cleaned) == 13:
        return _is_valid_isbn13(cleaned)
    return False


def _is_valid_isbn10(isbn: str) -> bool:
    # 'X' is only allowed as the check digit
    if not isbn[:9].isdigit():
        return False
    if not (isbn[9].isdigit() or isbn[9] == "X"):
        return False

    total = 0
    for position, char in enumerate(isbn, start=1):
        value = 10 if char == "X" else int(char)
        total += (11 - position) * value
    return total % 11 == 0


def _is_valid_isbn13(isbn: str) -> bool:
    if not isbn.isdigit():
        return False

    total = sum(
        int(char) * (1 if index % 2 == 0 else 3)
        for index, char in enumerate(isbn[:12])
    )
    check = (10 - total % 10) % 10
    return check == int(isbn[12])
