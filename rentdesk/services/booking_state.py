"""Booking lifecycle: pending -> confirmed -> in_use -> completed.

``cancelled`` is reachable from pending and confirmed only. Completed and
cancelled are terminal. The move to completed belongs to settlement
(``settlement_service.complete_booking``) because refund and damage figures
have to be fixed in the same write.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from rentdesk.core.errors import InvalidStateTransition, ValidationError
from rentdesk.core.timeutils import now_local, to_local
from rentdesk.models.booking import Booking
from rentdesk.services.audit_service import log_audit
from rentdesk.services.booking_repository import booking_start_at, check_version, commit_booking_changes, get_booking

logger = logging.getLogger(__name__)

PENDING = "pending"
CONFIRMED = "confirmed"
IN_USE = "in_use"
COMPLETED = "completed"
CANCELLED = "cancelled"

STATUSES = (PENDING, CONFIRMED, IN_USE, COMPLETED, CANCELLED)

TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {IN_USE, CANCELLED},
    IN_USE: {COMPLETED},
    COMPLETED: set(),
    CANCELLED: set(),
}

# Balances may still be settled after completion (damage beyond the deposit)
PAYABLE_STATUSES = (PENDING, CONFIRMED, IN_USE, COMPLETED)
EXTENDABLE_STATUSES = (CONFIRMED, IN_USE)


def assert_transition(current: str, requested: str) -> None:
    if requested not in STATUSES:
        raise ValidationError(f"unknown booking status {requested!r}")
    if requested not in TRANSITIONS.get(current, set()):
        raise InvalidStateTransition(current, requested)


def can_accept_payment(status: str) -> bool:
    return status in PAYABLE_STATUSES


def can_extend(status: str) -> bool:
    return status in EXTENDABLE_STATUSES


def change_status(db: Session, booking_ref: str, new_status: str, actor: str = "system",
                  expected_version: int | None = None, reason: str = "",
                  now: datetime | None = None) -> Booking:
    b = get_booking(db, booking_ref)
    check_version(b, expected_version)
    current = b.status
    assert_transition(current, new_status)
    if new_status == COMPLETED:
        raise ValidationError("bookings are completed through settlement, not a plain status change")

    now = to_local(now) if now else now_local()
    if new_status == IN_USE:
        pickup_at = booking_start_at(b)
        if now < pickup_at:
            raise ValidationError(
                f"booking {b.booking_ref} cannot start before pickup at {pickup_at.isoformat()}"
            )
    if new_status == CANCELLED:
        b.cancelled_at = now.astimezone(timezone.utc)
        b.cancellation_reason = reason or ""

    b.status = new_status
    b.updated_by = actor or "system"
    b.updated_at = datetime.now(timezone.utc)
    log_audit(db, actor=actor, action=f"booking.{new_status}", entity_type="booking", entity_id=b.id,
              details={"bookingRef": b.booking_ref, "from": current, "to": new_status, "reason": reason})
    commit_booking_changes(db, b)
    logger.info("booking %s moved %s -> %s by %s", b.booking_ref, current, new_status, actor)
    return b
