"""
API endpoints for catalog management: manual creation and update,
categories, ISBN validation and import of provider records.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from homelibrary.domain.services import CatalogService
from homelibrary.api.v1 import schemas as api
from homelibrary.api.v1.converters import domain_book_to_api, domain_isbn_validation_to_api
from homelibrary.api.v1.dependencies import get_catalog_service

router = APIRouter()


@router.post(
    "/books",
    response_model=api.ApiResponse[api.Book],
    status_code=status.HTTP_201_CREATED,
)
def create_book(
    request: api.BookCreateRequest,
    service: CatalogService = Depends(get_catalog_service),
) -> api.ApiResponse[api.Book]:
    """
    Add a book to the catalog by hand.

    Raises:
        400: Invalid field or ISBN
        409: Same ISBN, or same title and author, already in the catalog
    """
    book = service.create_book(**request.model_dump())
    return api.ApiResponse(data=domain_book_to_api(book), message="Book created")


@router.put("/books/{book_id}", response_model=api.ApiResponse[api.Book])
def update_book(
    book_id: UUID,
    request: api.BookUpdateRequest,
    service: CatalogService = Depends(get_catalog_service),
) -> api.ApiResponse[api.Book]:
    """
    Replace a catalog book's metadata. Rating aggregates are kept.

    Raises:
        400: Invalid field or ISBN
        404: Book not found
        409: ISBN, or title and author, already used by another book
    """
    book = service.update_book(book_id, **request.model_dump())
    return api.ApiResponse(data=domain_book_to_api(book), message="Book updated")


@router.get("/books/categories", response_model=api.ApiResponse[list[api.Category]])
def list_categories(
    service: CatalogService = Depends(get_catalog_service),
) -> api.ApiResponse[list[api.Category]]:
    categories = [api.Category(name=name, book_count=count) for name, count in service.list_categories()]
    return api.ApiResponse(data=categories)


@router.get("/books/validate-isbn/{isbn}", response_model=api.ApiResponse[api.IsbnValidation])
def validate_isbn(
    isbn: str,
    service: CatalogService = Depends(get_catalog_service),
) -> api.ApiResponse[api.IsbnValidation]:
    """
    Validate ISBN format and checksum.

    Valid ISBNs are looked up in the catalog, then in the external
    providers for prefill metadata. An invalid ISBN is still a 200 with
    valid=false.
    """
    result = service.validate_isbn(isbn)
    return api.ApiResponse(data=domain_isbn_validation_to_api(result))


@router.post("/books/import", response_model=api.ApiResponse[api.BookImportResult])
def import_book(
    request: api.BookImportRequest,
    response: Response,
    service: CatalogService = Depends(get_catalog_service),
) -> api.ApiResponse[api.BookImportResult]:
    """
    Import the provider record for an ISBN.

    201 when a new catalog book was created, 200 when the catalog already
    had the ISBN.
    """
    book, created = service.import_by_isbn(request.isbn)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return api.ApiResponse(
        data=api.BookImportResult(book=domain_book_to_api(book), created=created),
        message="Book imported" if created else "Book already in catalog",
    )
