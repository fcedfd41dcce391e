from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import case, func
from sqlalchemy.orm import Session
from qafzh.constants import AccountRole
from qafzh.listings.service import ListingService
from qafzh.models.account import Account
from qafzh.models.listing import Listing
from qafzh.schemas.admin import AccountStats, DashboardStats
from qafzh.utils import get_logger, utcnow

logger = get_logger(__name__)

EXPIRING_SOON_DAYS = 7

class AdminService:
    def __init__(self, listing_service: Optional[ListingService] = None):
        self.listing_service = listing_service or ListingService()

    def account_stats(self, db: Session) -> AccountStats:
        total, verified, active, admins = db.query(
            func.count(Account.id),
            func.count(case((Account.is_verified.is_(True), 1))),
            func.count(case((Account.is_active.is_(True), 1))),
            func.count(case((Account.role == AccountRole.admin, 1))),
        ).one()
        return AccountStats(total=total, verified=verified, active=active, admins=admins)

    def dashboard_stats(self, db: Session, now: Optional[datetime] = None) -> DashboardStats:
        now = now or utcnow()
        visible = self.listing_service.visible_query(db, now)
        expiring_soon = visible.filter(Listing.expires_at <= now + timedelta(days=EXPIRING_SOON_DAYS)).count()
        new_this_week = db.query(Listing).filter(Listing.created_at >= now - timedelta(days=7)).count()
        stats = DashboardStats(
            accounts=self.account_stats(db),
            listings=self.listing_service.status_summary(db),
            visible=visible.count(),
            expiring_soon=expiring_soon,
            new_this_week=new_this_week,
            generated_at=now,
        )
        logger.info("Dashboard stats generated: %d listings, %d accounts", stats.listings.total, stats.accounts.total)
        return stats
