"""
API endpoints for ratings and reviews.

Reads are public; mutations, /my and /users/ratings require the X-User-Id header.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from homelibrary.domain.services import RatingService
from homelibrary.api.v1 import schemas as api
from homelibrary.api.v1.converters import (
    domain_rating_statistics_to_api,
    domain_rating_to_api,
    make_page,
)
from homelibrary.api.v1.dependencies import get_current_user_id, get_rating_service

router = APIRouter()


@router.post("/books/{book_id}/ratings", response_model=api.ApiResponse[api.Rating])
def rate_book(
    book_id: UUID,
    request: api.RatingRequest,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    service: RatingService = Depends(get_rating_service),
) -> api.ApiResponse[api.Rating]:
    """
    Create or update the caller's rating.

    201 when a new rating was created, 200 when an existing one was updated.
    """
    rating, created = service.rate_book(user_id, book_id, request.rating, request.review)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return api.ApiResponse(
        data=domain_rating_to_api(rating),
        message="Rating created" if created else "Rating updated",
    )


@router.put("/books/{book_id}/ratings", response_model=api.ApiResponse[api.Rating])
def update_rating(
    book_id: UUID,
    request: api.RatingRequest,
    user_id: str = Depends(get_current_user_id),
    service: RatingService = Depends(get_rating_service),
) -> api.ApiResponse[api.Rating]:
    """
    Raises:
        404: The caller has not rated this book
    """
    rating = service.update_rating(user_id, book_id, request.rating, request.review)
    return api.ApiResponse(data=domain_rating_to_api(rating), message="Rating updated")


@router.delete("/books/{book_id}/ratings", response_model=api.ApiResponse[None])
def delete_rating(
    book_id: UUID,
    user_id: str = Depends(get_current_user_id),
    service: RatingService = Depends(get_rating_service),
) -> api.ApiResponse[None]:
    service.delete_rating(user_id, book_id)
    return api.ApiResponse(message="Rating deleted")


@router.get("/books/{book_id}/ratings", response_model=api.ApiResponse[api.Page[api.Rating]])
def list_ratings(
    book_id: UUID,
    page: int = 0,
    size: int = 20,
    service: RatingService = Depends(get_rating_service),
) -> api.ApiResponse[api.Page[api.Rating]]:
    ratings, total = service.list_book_ratings(book_id, page=page, size=size)
    content = [domain_rating_to_api(r) for r in ratings]
    return api.ApiResponse(data=make_page(api.Rating, content, page, size, total))


@router.get("/books/{book_id}/ratings/my", response_model=api.ApiResponse[api.Rating])
def my_rating(
    book_id: UUID,
    user_id: str = Depends(get_current_user_id),
    service: RatingService = Depends(get_rating_service),
) -> api.ApiResponse[api.Rating]:
    return api.ApiResponse(data=domain_rating_to_api(service.get_user_rating(user_id, book_id)))


@router.get("/books/{book_id}/ratings/statistics", response_model=api.ApiResponse[api.RatingStatistics])
def rating_statistics(
    book_id: UUID,
    service: RatingService = Depends(get_rating_service),
) -> api.ApiResponse[api.RatingStatistics]:
    """Average, count and per-star distribution (keys 1-5)."""
    stats = service.get_rating_statistics(book_id)
    return api.ApiResponse(data=domain_rating_statistics_to_api(stats))


@router.get("/users/ratings", response_model=api.ApiResponse[api.Page[api.Rating]])
def my_ratings(
    page: int = 0,
    size: int = 20,
    user_id: str = Depends(get_current_user_id),
    service: RatingService = Depends(get_rating_service),
) -> api.ApiResponse[api.Page[api.Rating]]:
    """The caller's ratings across all books, newest first."""
    ratings, total = service.list_user_ratings(user_id, page=page, size=size)
    content = [domain_rating_to_api(r) for r in ratings]
    return api.ApiResponse(data=make_page(api.Rating, content, page, size, total))
