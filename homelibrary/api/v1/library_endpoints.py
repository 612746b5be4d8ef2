"""
API endpoints for the caller's personal library.

Every route requires the X-User-Id header.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from homelibrary.domain.services import LibraryService
from homelibrary.domain.value_objects import ReadingStatus
from homelibrary.api.v1 import schemas as api
from homelibrary.api.v1.converters import (
    domain_library_book_to_api,
    domain_library_statistics_to_api,
    make_page,
)
from homelibrary.api.v1.dependencies import get_current_user_id, get_library_service

router = APIRouter()


@router.get("/library/books", response_model=api.ApiResponse[api.Page[api.LibraryBook]])
def list_library(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    q: Optional[str] = None,
    page: int = 0,
    size: int = 20,
    user_id: str = Depends(get_current_user_id),
    service: LibraryService = Depends(get_library_service),
) -> api.ApiResponse[api.Page[api.LibraryBook]]:
    """List the caller's library, most recently added first."""
    reading_status = ReadingStatus.parse(status_filter) if status_filter else None
    books, total = service.list_books(user_id, status=reading_status, query=q, page=page, size=size)

    content = [domain_library_book_to_api(b) for b in books]
    return api.ApiResponse(data=make_page(api.LibraryBook, content, page, size, total))


@router.get("/library/statistics", response_model=api.ApiResponse[api.LibraryStatistics])
def library_statistics(
    user_id: str = Depends(get_current_user_id),
    service: LibraryService = Depends(get_library_service),
) -> api.ApiResponse[api.LibraryStatistics]:
    return api.ApiResponse(data=domain_library_statistics_to_api(service.get_statistics(user_id)))


@router.get("/library/books/{book_id}", response_model=api.ApiResponse[api.LibraryBook])
def get_library_book(
    book_id: UUID,
    user_id: str = Depends(get_current_user_id),
    service: LibraryService = Depends(get_library_service),
) -> api.ApiResponse[api.LibraryBook]:
    return api.ApiResponse(data=domain_library_book_to_api(service.get_book(user_id, book_id)))


@router.post(
    "/library/books/{book_id}",
    response_model=api.ApiResponse[api.LibraryBook],
    status_code=status.HTTP_201_CREATED,
)
def add_to_library(
    book_id: UUID,
    request: Optional[api.LibraryAddRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: LibraryService = Depends(get_library_service),
) -> api.ApiResponse[api.LibraryBook]:
    """
    Add a catalog book to the caller's library.

    Raises:
        404: Book not in the catalog
        409: Book already in the library
    """
    request = request or api.LibraryAddRequest()
    item = service.add_book(
        user_id,
        book_id,
        status=ReadingStatus.parse(request.status),
        current_page=request.current_page,
        personal_notes=request.personal_notes,
        physical_location=request.physical_location,
    )
    return api.ApiResponse(data=domain_library_book_to_api(item), message="Book added to library")


@router.put("/library/books/{book_id}", response_model=api.ApiResponse[api.LibraryBook])
def update_library_book(
    book_id: UUID,
    request: api.LibraryUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    service: LibraryService = Depends(get_library_service),
) -> api.ApiResponse[api.LibraryBook]:
    """
    Update status, progress, notes, location or the caller's rating.

    Moving to READING stamps dateStarted, moving to READ stamps dateCompleted.
    """
    item = service.update_book(
        user_id,
        book_id,
        status=ReadingStatus.parse(request.status) if request.status is not None else None,
        current_page=request.current_page,
        personal_notes=request.personal_notes,
        physical_location=request.physical_location,
        user_rating=request.user_rating,
    )
    return api.ApiResponse(data=domain_library_book_to_api(item), message="Library entry updated")


@router.delete("/library/books/{book_id}", response_model=api.ApiResponse[None])
def remove_from_library(
    book_id: UUID,
    user_id: str = Depends(get_current_user_id),
    service: LibraryService = Depends(get_library_service),
) -> api.ApiResponse[None]:
    service.remove_book(user_id, book_id)
    return api.ApiResponse(message="Book removed from library")
