from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, Field, StringConstraints, model_validator

from qafzh.constants import (
    MAX_IMAGES,
    MAX_PRICE,
    URL_REGEX,
    Currency,
    ListingCategory,
    ListingCondition,
    ListingStatus,
)
from qafzh.schemas.common import Page, PhoneStr

ListingName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=200)]
Place = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
ImageUrl = Annotated[str, Field(pattern=URL_REGEX)]

class ListingCreate(BaseModel):
    """Submission payload.

    Required fields are declared first, in the order their errors are
    reported: name, category, condition, price, phone, governorate, city.
    """

    name: ListingName
    category: ListingCategory
    condition: ListingCondition
    price: float = Field(..., ge=0, le=MAX_PRICE)
    phone: PhoneStr
    governorate: Place
    city: Place

    description: Optional[str] = Field(None, max_length=2000)
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    currency: Currency = Currency.yer
    is_negotiable: bool = False
    whatsapp_phone: Optional[PhoneStr] = None
    location_text: Optional[str] = Field(None, max_length=500)
    images: List[ImageUrl] = Field(default_factory=list, max_length=MAX_IMAGES)

class ListingUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    name: Optional[ListingName] = None
    category: Optional[ListingCategory] = None
    condition: Optional[ListingCondition] = None
    price: Optional[float] = Field(None, ge=0, le=MAX_PRICE)
    phone: Optional[PhoneStr] = None
    governorate: Optional[Place] = None
    city: Optional[Place] = None
    description: Optional[str] = Field(None, max_length=2000)
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    currency: Optional[Currency] = None
    is_negotiable: Optional[bool] = None
    whatsapp_phone: Optional[PhoneStr] = None
    location_text: Optional[str] = Field(None, max_length=500)
    images: Optional[List[ImageUrl]] = Field(None, max_length=MAX_IMAGES)

    @model_validator(mode="after")
    def required_fields_not_null(self):
        for field in ("name", "category", "condition", "price", "phone", "governorate", "city",
                      "currency", "is_negotiable", "images"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)

class OwnerSummary(BaseModel):
    id: int
    name: str
    phone: str

    class Config:
        from_attributes = True

class ListingResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: ListingCategory
    condition: ListingCondition
    brand: Optional[str] = None
    model: Optional[str] = None
    price: float
    currency: Currency
    is_negotiable: bool
    phone: str
    whatsapp_phone: Optional[str] = None
    governorate: str
    city: str
    location_text: Optional[str] = None
    images: List[str] = []
    status: ListingStatus
    rejection_reason: Optional[str] = None
    owner_id: int
    owner: Optional[OwnerSummary] = None
    created_at: datetime
    updated_at: datetime
    expires_at: datetime

    class Config:
        from_attributes = True

class AdminListingResponse(ListingResponse):
    admin_notes: Optional[str] = None
    moderated_by_id: Optional[int] = None
    moderated_at: Optional[datetime] = None
    version: int

class StatusUpdateRequest(BaseModel):
    status: ListingStatus
    reason: Optional[str] = Field(None, max_length=500)
    admin_notes: Optional[str] = Field(None, max_length=1000)

class StatusChangeResponse(BaseModel):
    id: int
    from_status: Optional[ListingStatus] = None
    to_status: ListingStatus
    reason: Optional[str] = None
    actor_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True

SortField = Literal["created_at", "price", "name"]
AdminSortField = Literal["created_at", "price", "name", "status"]
SortOrder = Literal["asc", "desc"]

class ListingFilters(BaseModel):
    category: Optional[ListingCategory] = None
    condition: Optional[ListingCondition] = None
    brand: Optional[str] = None
    governorate: Optional[str] = None
    city: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    search: Optional[str] = None
    sort_by: AdminSortField = "created_at"
    sort_order: SortOrder = "desc"
    # Admin-only filters
    status: Optional[ListingStatus] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None

class StatusSummary(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    sold: int = 0
    inactive: int = 0

class AdminListingPage(Page[AdminListingResponse]):
    summary: StatusSummary
