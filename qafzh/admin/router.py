from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from qafzh.admin.service import AdminService
from qafzh.auth.dependencies import require_admin
from qafzh.config import settings
from qafzh.constants import ListingCategory, ListingCondition, ListingStatus
from qafzh.database import get_db
from qafzh.exceptions import ValidationError
from qafzh.listings.router import browse_filters, listing_service
from qafzh.models.account import Account
from qafzh.schemas.admin import DashboardStats
from qafzh.schemas.common import ApiResponse, ErrorResponse, Page
from qafzh.schemas.listing import (
    AdminListingPage,
    AdminListingResponse,
    AdminSortField,
    ListingFilters,
    SortOrder,
    StatusChangeResponse,
    StatusUpdateRequest,
)

router = APIRouter()
admin_service = AdminService(listing_service)

ADMIN_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Not authenticated"},
    403: {"model": ErrorResponse, "description": "Admins only"},
}

def _parse_status(value: Optional[str]) -> Optional[ListingStatus]:
    if value is None or value == "all":
        return None
    try:
        return ListingStatus(value)
    except ValueError:
        allowed = ", ".join(["all"] + [s.value for s in ListingStatus])
        raise ValidationError(f"status: must be one of {allowed}", data={"field": "status"})

def admin_filters(
    status: Optional[str] = Query(None, description="A listing status, or 'all'"),
    category: Optional[ListingCategory] = None,
    condition: Optional[ListingCondition] = None,
    brand: Optional[str] = None,
    governorate: Optional[str] = None,
    city: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    search: Optional[str] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    sort_by: AdminSortField = "created_at",
    sort_order: SortOrder = "desc",
) -> ListingFilters:
    return ListingFilters(
        status=_parse_status(status),
        category=category,
        condition=condition,
        brand=brand,
        governorate=governorate,
        city=city,
        min_price=min_price,
        max_price=max_price,
        search=search,
        created_from=created_from,
        created_to=created_to,
        sort_by=sort_by,
        sort_order=sort_order,
    )

@router.get("/get", response_model=ApiResponse[AdminListingPage], responses=ADMIN_RESPONSES)
def list_products(
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_SIZE,
    filters: ListingFilters = Depends(admin_filters),
    admin: Account = Depends(require_admin),
    db: Session = Depends(get_db),
):
    result = listing_service.admin_list(filters, page, limit, db, schema=AdminListingResponse)
    # Counts cover every listing, not just the filtered page
    summary = listing_service.status_summary(db)
    return ApiResponse(data=AdminListingPage(**result.model_dump(), summary=summary))

@router.get("/dashboard-stats", response_model=ApiResponse[DashboardStats], responses=ADMIN_RESPONSES)
def dashboard_stats(admin: Account = Depends(require_admin), db: Session = Depends(get_db)):
    return ApiResponse(data=admin_service.dashboard_stats(db))

@router.get("/pending", response_model=ApiResponse[Page[AdminListingResponse]], responses=ADMIN_RESPONSES)
def pending_products(
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_SIZE,
    filters: ListingFilters = Depends(browse_filters),
    admin: Account = Depends(require_admin),
    db: Session = Depends(get_db),
):
    result = listing_service.pending_queue(filters, page, limit, db, schema=AdminListingResponse)
    return ApiResponse(data=result)

@router.patch(
    "/update/{listing_id}",
    response_model=ApiResponse[AdminListingResponse],
    responses={
        **ADMIN_RESPONSES,
        400: {"model": ErrorResponse, "description": "Transition not allowed"},
        404: {"model": ErrorResponse, "description": "Product not found"},
        409: {"model": ErrorResponse, "description": "Product was changed concurrently"},
    },
)
def update_status(
    listing_id: int,
    data: StatusUpdateRequest,
    admin: Account = Depends(require_admin),
    db: Session = Depends(get_db),
):
    listing = listing_service.transition(admin, listing_id, data, db)
    return ApiResponse(
        message=f"Product status updated to {listing.status.value}",
        data=AdminListingResponse.model_validate(listing),
    )

@router.get(
    "/history/{listing_id}",
    response_model=ApiResponse[List[StatusChangeResponse]],
    responses={**ADMIN_RESPONSES, 404: {"model": ErrorResponse, "description": "Product not found"}},
)
def status_history(
    listing_id: int,
    admin: Account = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = listing_service.history(listing_id, db)
    return ApiResponse(data=[StatusChangeResponse.model_validate(c) for c in changes])

@router.delete(
    "/delete/{listing_id}",
    response_model=ApiResponse[None],
    responses={**ADMIN_RESPONSES, 404: {"model": ErrorResponse, "description": "Product not found"}},
)
def delete_product(
    listing_id: int,
    admin: Account = Depends(require_admin),
    db: Session = Depends(get_db),
):
    listing_service.delete(admin, listing_id, db)
    return ApiResponse(message="Product deleted successfully")
