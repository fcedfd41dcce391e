from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from qafzh.config import settings
from qafzh.constants import Currency, ListingCategory, ListingCondition, ListingStatus
from qafzh.database import Base
from qafzh.models.account import Account
from qafzh.utils import utcnow

def _enum_values(enum_cls):
    return [member.value for member in enum_cls]

def default_expiry() -> datetime:
    return utcnow() + timedelta(days=settings.LISTING_EXPIRY_DAYS)

class Listing(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Enum(ListingCategory, name="listing_category", values_callable=_enum_values), nullable=False)
    condition = Column(Enum(ListingCondition, name="listing_condition", values_callable=_enum_values), nullable=False)
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    price = Column(Float, nullable=False)
    currency = Column(Enum(Currency, name="listing_currency", values_callable=_enum_values), nullable=False, default=Currency.yer)
    is_negotiable = Column(Boolean, nullable=False, default=False)
    phone = Column(String(20), nullable=False)
    whatsapp_phone = Column(String(20), nullable=True)
    governorate = Column(String(100), nullable=False)
    city = Column(String(100), nullable=False)
    location_text = Column(String(500), nullable=True)
    images = Column(JSON, nullable=False, default=list)

    owner_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    status = Column(Enum(ListingStatus, name="listing_status"), nullable=False, default=ListingStatus.pending, index=True)
    rejection_reason = Column(String(500), nullable=True)
    admin_notes = Column(String(1000), nullable=True)
    moderated_by_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    moderated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    expires_at = Column(DateTime, nullable=False, default=default_expiry, index=True)
    version = Column(Integer, nullable=False)

    owner = relationship(Account, foreign_keys=[owner_id], lazy="joined")
    moderated_by = relationship(Account, foreign_keys=[moderated_by_id])
    status_changes = relationship(
        "ListingStatusChange",
        back_populates="listing",
        cascade="all, delete-orphan",
        order_by="ListingStatusChange.id",
    )

    # Stale concurrent writes raise StaleDataError instead of overwriting
    __mapper_args__ = {"version_id_col": version}

    def is_visible(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return self.status == ListingStatus.approved and now < self.expires_at

class ListingStatusChange(Base):
    __tablename__ = "product_status_changes"

    id = Column(Integer, primary_key=True)
    listing_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    from_status = Column(Enum(ListingStatus, name="listing_status"), nullable=True)
    to_status = Column(Enum(ListingStatus, name="listing_status"), nullable=False)
    reason = Column(String(500), nullable=True)
    actor_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    listing = relationship("Listing", back_populates="status_changes")

Index("idx_products_location", Listing.governorate, Listing.city)
Index("idx_products_category_condition", Listing.category, Listing.condition)
Index("idx_products_status_expires", Listing.status, Listing.expires_at)
