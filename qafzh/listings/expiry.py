from datetime import datetime
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from qafzh.config import settings
from qafzh.constants import ListingStatus
from qafzh.database import SessionLocal
from qafzh.listings.moderation import apply_transition
from qafzh.models.listing import Listing
from qafzh.utils import get_logger, utcnow

logger = get_logger(__name__)

EXPIRED_REASON = "Listing expired"

def expire_listings(db: Session, now: Optional[datetime] = None) -> int:
    """Deactivate approved listings whose visibility window has closed.

    Browsing already hides them; this keeps the stored status in step.
    Returns the number of listings moved to inactive.
    """
    now = now or utcnow()
    ids = [
        row.id
        for row in db.query(Listing.id).filter(
            Listing.status == ListingStatus.approved, Listing.expires_at <= now
        )
    ]
    expired = 0
    for listing_id in ids:
        listing = db.get(Listing, listing_id)
        if listing is None or listing.status != ListingStatus.approved:
            continue
        apply_transition(
            listing, ListingStatus.inactive, None, reason=EXPIRED_REASON, record_moderator=False, now=now
        )
        try:
            db.commit()
        except StaleDataError:
            # An admin changed it first; their decision stands
            db.rollback()
            logger.info("Listing %s changed during expiry sweep, skipped", listing_id)
            continue
        expired += 1
    if expired:
        logger.info("Expiry sweep deactivated %d listing(s)", expired)
    return expired

def run_expiry_sweep() -> None:
    db = SessionLocal()
    try:
        expire_listings(db)
    except Exception:
        logger.exception("Expiry sweep failed")
        db.rollback()
    finally:
        db.close()

def start_expiry_scheduler() -> BackgroundScheduler:
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        run_expiry_sweep,
        "interval",
        minutes=settings.EXPIRY_SWEEP_INTERVAL_MINUTES,
        id="listing-expiry",
    )
    scheduler.start()
    logger.info("Expiry scheduler started (every %d min)", settings.EXPIRY_SWEEP_INTERVAL_MINUTES)
    return scheduler
