from typing import Optional
from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session
from qafzh.auth.dependencies import get_current_account, require_verified
from qafzh.config import settings
from qafzh.constants import ListingCategory, ListingCondition, ListingStatus
from qafzh.database import get_db
from qafzh.listings.service import ListingService
from qafzh.models.account import Account
from qafzh.schemas.common import ApiResponse, ErrorResponse, Page
from qafzh.schemas.listing import (
    ListingCreate,
    ListingFilters,
    ListingResponse,
    ListingUpdate,
    SortField,
    SortOrder,
)

products_router = APIRouter()
marketplace_router = APIRouter()
listing_service = ListingService()

def browse_filters(
    category: Optional[ListingCategory] = None,
    condition: Optional[ListingCondition] = None,
    brand: Optional[str] = None,
    governorate: Optional[str] = None,
    city: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    search: Optional[str] = Query(None, description="Matches name, description or brand"),
    sort_by: SortField = "created_at",
    sort_order: SortOrder = "desc",
) -> ListingFilters:
    return ListingFilters(
        category=category,
        condition=condition,
        brand=brand,
        governorate=governorate,
        city=city,
        min_price=min_price,
        max_price=max_price,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )

def _browse(filters: ListingFilters, page: int, limit: int, db: Session):
    result = listing_service.browse(filters, page, limit, db)
    return ApiResponse(data=result)

@products_router.post(
    "/post",
    response_model=ApiResponse[ListingResponse],
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Phone number not verified"},
    },
)
def post_product(
    data: ListingCreate,
    account: Account = Depends(require_verified),
    db: Session = Depends(get_db),
):
    listing = listing_service.submit(account, data, db)
    return ApiResponse(message="Product posted successfully", data=ListingResponse.model_validate(listing))

@products_router.get("/mine", response_model=ApiResponse[Page[ListingResponse]])
def my_products(
    status: Optional[ListingStatus] = None,
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_SIZE,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    return ApiResponse(data=listing_service.list_for_owner(account, status, page, limit, db))

@products_router.get("/browse-products", response_model=ApiResponse[Page[ListingResponse]])
def browse_products(
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_SIZE,
    filters: ListingFilters = Depends(browse_filters),
    db: Session = Depends(get_db),
):
    return _browse(filters, page, limit, db)

@products_router.patch(
    "/update-product/{listing_id}",
    response_model=ApiResponse[ListingResponse],
    responses={
        403: {"model": ErrorResponse, "description": "Not the owner"},
        404: {"model": ErrorResponse, "description": "Product not found"},
    },
)
def update_product(
    listing_id: int,
    patch: ListingUpdate,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    listing = listing_service.edit(account, listing_id, patch, db)
    return ApiResponse(message="Product updated successfully", data=ListingResponse.model_validate(listing))

@products_router.post(
    "/resubmit/{listing_id}",
    response_model=ApiResponse[ListingResponse],
    responses={
        400: {"model": ErrorResponse, "description": "Product is not rejected"},
        403: {"model": ErrorResponse, "description": "Not the owner"},
        404: {"model": ErrorResponse, "description": "Product not found"},
    },
)
def resubmit_product(
    listing_id: int,
    patch: Optional[ListingUpdate] = Body(None),
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    listing = listing_service.resubmit(account, listing_id, patch, db)
    return ApiResponse(message="Product resubmitted for review", data=ListingResponse.model_validate(listing))

@products_router.delete(
    "/delete-product/{listing_id}",
    response_model=ApiResponse[None],
    responses={
        403: {"model": ErrorResponse, "description": "Not the owner"},
        404: {"model": ErrorResponse, "description": "Product not found"},
    },
)
def delete_product(
    listing_id: int,
    account: Account = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    listing_service.delete(account, listing_id, db)
    return ApiResponse(message="Product deleted successfully")

@marketplace_router.get("/products", response_model=ApiResponse[Page[ListingResponse]])
def marketplace_products(
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_SIZE,
    filters: ListingFilters = Depends(browse_filters),
    db: Session = Depends(get_db),
):
    return _browse(filters, page, limit, db)

@marketplace_router.get("/browse-products", response_model=ApiResponse[Page[ListingResponse]])
def marketplace_browse_products(
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_SIZE,
    filters: ListingFilters = Depends(browse_filters),
    db: Session = Depends(get_db),
):
    return _browse(filters, page, limit, db)

@marketplace_router.get(
    "/products/{listing_id}",
    response_model=ApiResponse[ListingResponse],
    responses={404: {"model": ErrorResponse, "description": "Product not found"}},
)
def marketplace_product(listing_id: int, db: Session = Depends(get_db)):
    listing = listing_service.get_public(listing_id, db)
    return ApiResponse(data=ListingResponse.model_validate(listing))
