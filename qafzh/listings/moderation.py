"""Listing status transitions. Moves not in a table are refused and change nothing."""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, FrozenSet, Optional

from qafzh.config import settings
from qafzh.constants import ListingStatus
from qafzh.exceptions import InvalidTransitionError, ValidationError
from qafzh.models.account import Account
from qafzh.models.listing import Listing, ListingStatusChange
from qafzh.utils import utcnow

@dataclass(frozen=True)
class TransitionContext:
    actor: Optional[Account]
    reason: Optional[str]
    now: datetime

Hook = Callable[[Listing, TransitionContext], None]
TransitionTable = Dict[ListingStatus, Dict[ListingStatus, Optional[Hook]]]

def _on_approve(listing: Listing, ctx: TransitionContext) -> None:
    listing.rejection_reason = None
    # Reactivating an expired listing starts a fresh visibility window
    if listing.expires_at is None or listing.expires_at <= ctx.now:
        listing.expires_at = ctx.now + timedelta(days=settings.LISTING_EXPIRY_DAYS)

def _on_reject(listing: Listing, ctx: TransitionContext) -> None:
    listing.rejection_reason = ctx.reason

def _on_resubmit(listing: Listing, ctx: TransitionContext) -> None:
    listing.rejection_reason = None

ADMIN_TRANSITIONS: TransitionTable = {
    ListingStatus.pending: {
        ListingStatus.approved: _on_approve,
        ListingStatus.rejected: _on_reject,
    },
    ListingStatus.approved: {
        ListingStatus.sold: None,
        ListingStatus.inactive: None,
    },
    ListingStatus.inactive: {
        ListingStatus.approved: _on_approve,
    },
    ListingStatus.rejected: {},
    ListingStatus.sold: {},
}

OWNER_TRANSITIONS: TransitionTable = {
    ListingStatus.rejected: {
        ListingStatus.pending: _on_resubmit,
    },
}

def allowed_transitions(current: ListingStatus, table: TransitionTable = ADMIN_TRANSITIONS) -> FrozenSet[ListingStatus]:
    return frozenset(table.get(current, {}))

def is_allowed(current: ListingStatus, target: ListingStatus, table: TransitionTable = ADMIN_TRANSITIONS) -> bool:
    return target in table.get(current, {})

def apply_transition(
    listing: Listing,
    target: ListingStatus,
    actor: Optional[Account],
    reason: Optional[str] = None,
    table: TransitionTable = ADMIN_TRANSITIONS,
    record_moderator: bool = True,
    now: Optional[datetime] = None,
) -> ListingStatusChange:
    """Move ``listing`` to ``target`` or raise without touching it.

    The caller commits; a refused transition leaves nothing to roll back.
    """
    current = listing.status
    edges = table.get(current, {})
    if target not in edges:
        allowed = sorted(status.value for status in edges)
        raise InvalidTransitionError(
            f"Cannot change status from '{current.value}' to '{target.value}'",
            data={"current_status": current.value, "allowed": allowed},
        )

    reason = (reason or "").strip() or None
    if target == ListingStatus.rejected and not reason:
        raise ValidationError("A reason is required when rejecting a listing")

    ctx = TransitionContext(actor=actor, reason=reason, now=now or utcnow())
    hook = edges[target]
    if hook is not None:
        hook(listing, ctx)

    listing.status = target
    if record_moderator and actor is not None:
        listing.moderated_by_id = actor.id
        listing.moderated_at = ctx.now

    change = ListingStatusChange(
        from_status=current,
        to_status=target,
        reason=reason,
        actor_id=actor.id if actor is not None else None,
        created_at=ctx.now,
    )
    listing.status_changes.append(change)
    return change
