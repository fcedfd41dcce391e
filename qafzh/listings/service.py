import math
from datetime import datetime, timedelta
from typing import List, Optional, Type

from pydantic import BaseModel
from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from qafzh.config import settings
from qafzh.constants import ListingStatus
from qafzh.exceptions import AuthorizationError, NotFoundError
from qafzh.listings.moderation import OWNER_TRANSITIONS, apply_transition
from qafzh.models.account import Account
from qafzh.models.listing import Listing, ListingStatusChange
from qafzh.schemas.common import Page
from qafzh.schemas.listing import (
    ListingCreate,
    ListingFilters,
    ListingResponse,
    ListingUpdate,
    StatusSummary,
    StatusUpdateRequest,
)
from qafzh.utils import get_logger, utcnow

logger = get_logger(__name__)

SORT_COLUMNS = {
    "created_at": Listing.created_at,
    "price": Listing.price,
    "name": Listing.name,
    "status": Listing.status,
}

def clamp_page(page: Optional[int], limit: Optional[int]) -> tuple[int, int]:
    """1-based page, and a page size capped at MAX_PAGE_SIZE rather than rejected."""
    page = page if page and page > 0 else 1
    if not limit or limit < 1:
        limit = settings.DEFAULT_PAGE_SIZE
    return page, min(limit, settings.MAX_PAGE_SIZE)

def paginate(query: Query, page: Optional[int], limit: Optional[int], schema: Type[BaseModel] = ListingResponse) -> Page:
    page, limit = clamp_page(page, limit)
    total = query.count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return Page(
        items=[schema.model_validate(row) for row in rows],
        total=total,
        current_page=page,
        total_pages=math.ceil(total / limit) if total else 0,
        page_size=limit,
    )

def apply_filters(query: Query, filters: ListingFilters) -> Query:
    if filters.category:
        query = query.filter(Listing.category == filters.category)
    if filters.condition:
        query = query.filter(Listing.condition == filters.condition)
    if filters.brand and filters.brand.strip():
        query = query.filter(Listing.brand.icontains(filters.brand.strip(), autoescape=True))
    if filters.governorate and filters.governorate.strip():
        query = query.filter(Listing.governorate.icontains(filters.governorate.strip(), autoescape=True))
    if filters.city and filters.city.strip():
        query = query.filter(Listing.city.icontains(filters.city.strip(), autoescape=True))
    if filters.min_price is not None:
        query = query.filter(Listing.price >= filters.min_price)
    if filters.max_price is not None:
        query = query.filter(Listing.price <= filters.max_price)
    if filters.search and filters.search.strip():
        term = filters.search.strip()
        query = query.filter(
            or_(
                Listing.name.icontains(term, autoescape=True),
                Listing.description.icontains(term, autoescape=True),
                Listing.brand.icontains(term, autoescape=True),
            )
        )
    return query

def apply_sort(query: Query, filters: ListingFilters) -> Query:
    column = SORT_COLUMNS.get(filters.sort_by, Listing.created_at)
    primary = column.asc() if filters.sort_order == "asc" else column.desc()
    # Newest first among equal keys, then id for a total order
    return query.order_by(primary, Listing.created_at.desc(), Listing.id.desc())

class ListingService:
    def _get(self, db: Session, listing_id: int) -> Listing:
        listing = db.get(Listing, listing_id)
        if listing is None:
            raise NotFoundError("Product not found")
        return listing

    def _get_for_change(self, db: Session, listing_id: int, actor: Account) -> Listing:
        listing = self._get(db, listing_id)
        if listing.owner_id != actor.id and not actor.is_admin:
            raise AuthorizationError("You can only modify your own products")
        return listing

    def submit(self, owner: Account, data: ListingCreate, db: Session) -> Listing:
        if not owner.is_verified:
            raise AuthorizationError("Please verify your phone number before posting products")

        now = utcnow()
        status = ListingStatus.approved if settings.LISTING_AUTO_APPROVE else ListingStatus.pending
        listing = Listing(
            **data.model_dump(),
            owner_id=owner.id,
            status=status,
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(days=settings.LISTING_EXPIRY_DAYS),
        )
        listing.status_changes.append(
            ListingStatusChange(from_status=None, to_status=status, actor_id=owner.id, created_at=now)
        )
        db.add(listing)
        db.commit()
        db.refresh(listing)
        logger.info("Listing %s submitted by account %s as %s", listing.id, owner.id, status.value)
        return listing

    def edit(self, actor: Account, listing_id: int, patch: ListingUpdate, db: Session) -> Listing:
        listing = self._get_for_change(db, listing_id, actor)
        changes = patch.changes()
        for field, value in changes.items():
            setattr(listing, field, value)
        if changes:
            db.commit()
            db.refresh(listing)
            logger.info("Listing %s edited by account %s: %s", listing.id, actor.id, sorted(changes))
        return listing

    def resubmit(self, owner: Account, listing_id: int, patch: Optional[ListingUpdate], db: Session) -> Listing:
        listing = self._get(db, listing_id)
        if listing.owner_id != owner.id:
            raise AuthorizationError("Only the owner can resubmit a product")
        # Validate the move before applying edits so a refused resubmission changes nothing
        apply_transition(listing, ListingStatus.pending, owner, table=OWNER_TRANSITIONS, record_moderator=False)
        if patch is not None:
            for field, value in patch.changes().items():
                setattr(listing, field, value)
        db.commit()
        db.refresh(listing)
        logger.info("Listing %s resubmitted for review", listing.id)
        return listing

    def delete(self, actor: Account, listing_id: int, db: Session) -> None:
        listing = self._get_for_change(db, listing_id, actor)
        db.delete(listing)
        db.commit()
        logger.info("Listing %s deleted by account %s", listing_id, actor.id)

    def transition(self, admin: Account, listing_id: int, data: StatusUpdateRequest, db: Session) -> Listing:
        if not admin.is_admin:
            raise AuthorizationError("Access denied. Admins only.")
        listing = self._get(db, listing_id)
        previous = listing.status
        apply_transition(listing, data.status, admin, reason=data.reason)
        if data.admin_notes is not None:
            listing.admin_notes = data.admin_notes
        db.commit()
        db.refresh(listing)
        logger.info(
            "Listing %s moved %s -> %s by admin %s", listing.id, previous.value, listing.status.value, admin.id
        )
        return listing

    def history(self, listing_id: int, db: Session) -> List[ListingStatusChange]:
        return list(self._get(db, listing_id).status_changes)

    def get_public(self, listing_id: int, db: Session) -> Listing:
        listing = db.get(Listing, listing_id)
        if listing is None or not listing.is_visible():
            raise NotFoundError("Product not found")
        return listing

    def visible_query(self, db: Session, now: Optional[datetime] = None) -> Query:
        now = now or utcnow()
        return db.query(Listing).filter(Listing.status == ListingStatus.approved, Listing.expires_at > now)

    def browse(
        self,
        filters: ListingFilters,
        page: Optional[int],
        limit: Optional[int],
        db: Session,
        now: Optional[datetime] = None,
    ) -> Page:
        query = apply_filters(self.visible_query(db, now), filters)
        return paginate(apply_sort(query, filters), page, limit)

    def list_for_owner(
        self,
        owner: Account,
        status: Optional[ListingStatus],
        page: Optional[int],
        limit: Optional[int],
        db: Session,
    ) -> Page:
        query = db.query(Listing).filter(Listing.owner_id == owner.id)
        if status:
            query = query.filter(Listing.status == status)
        query = query.order_by(Listing.created_at.desc(), Listing.id.desc())
        return paginate(query, page, limit)

    def admin_list(
        self,
        filters: ListingFilters,
        page: Optional[int],
        limit: Optional[int],
        db: Session,
        schema: Type[BaseModel] = ListingResponse,
    ) -> Page:
        query = db.query(Listing)
        if filters.status:
            query = query.filter(Listing.status == filters.status)
        if filters.created_from:
            query = query.filter(Listing.created_at >= filters.created_from)
        if filters.created_to:
            query = query.filter(Listing.created_at <= filters.created_to)
        query = apply_filters(query, filters)
        return paginate(apply_sort(query, filters), page, limit, schema)

    def status_summary(self, db: Session) -> StatusSummary:
        rows = db.query(Listing.status, func.count(Listing.id)).group_by(Listing.status).all()
        counts = {status.value: count for status, count in rows}
        return StatusSummary(total=sum(counts.values()), **counts)

    def pending_queue(
        self,
        filters: ListingFilters,
        page: Optional[int],
        limit: Optional[int],
        db: Session,
        schema: Type[BaseModel] = ListingResponse,
    ) -> Page:
        query = apply_filters(db.query(Listing).filter(Listing.status == ListingStatus.pending), filters)
        query = query.order_by(Listing.created_at.asc(), Listing.id.asc())
        return paginate(query, page, limit, schema)
