"""
Domain utilities module.

Provides shared utilities for the domain layer that remain
independent of infrastructure concerns.
"""

from .isbn import normalize_isbn, is_valid_isbn

__all__ = ["normalize_isbn", "is_valid_isbn"]
