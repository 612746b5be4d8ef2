"""
Domain exceptions.

The API layer maps these onto HTTP status codes:

- ValidationError / ValueError  -> 400
- NotFoundError (LookupError)    -> 404
- DuplicateError                 -> 409
- SearchFailedError / RuntimeError -> 503

Subclassing the builtin exceptions keeps existing `except ValueError`
handlers working for callers that don't care about the distinction.
"""


class ValidationError(ValueError):
    """Input rejected before any I/O."""


class NotFoundError(LookupError):
    """A referenced resource does not exist."""


class BookNotFoundError(NotFoundError):
    def __init__(self, book_id) -> None:
        super().__init__(f"Book with id '{book_id}' not found")
        self.book_id = book_id


class LibraryEntryNotFoundError(NotFoundError):
    def __init__(self, user_id: str, book_id) -> None:
        super().__init__(f"Book '{book_id}' is not in the library of user '{user_id}'")
        self.user_id = user_id
        self.book_id = book_id


class RatingNotFoundError(NotFoundError):
    def __init__(self, user_id: str, book_id) -> None:
        super().__init__(f"Rating not found for user '{user_id}' and book '{book_id}'")
        self.user_id = user_id
        self.book_id = book_id


class DuplicateError(ValueError):
    """The operation would create a second row for a unique key."""


class DuplicateBookError(DuplicateError):
    pass


class DuplicateLibraryEntryError(DuplicateError):
    def __init__(self, user_id: str, book_id) -> None:
        super().__init__("Book is already in your library")
        self.user_id = user_id
        self.book_id = book_id


class SearchFailedError(RuntimeError):
    """The local catalog query failed."""
