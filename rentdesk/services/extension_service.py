import json
import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rentdesk.core.config import settings
from rentdesk.core.errors import ValidationError
from rentdesk.core.timeutils import split_local, to_local
from rentdesk.models.booking import Booking
from rentdesk.models.extension import BookingExtension
from rentdesk.models.notification import Notification
from rentdesk.services.audit_service import log_audit
from rentdesk.services.booking_repository import booking_end_at, check_version, commit_booking_changes, get_booking
from rentdesk.services.booking_state import can_extend
from rentdesk.services.charges import apply_charges

logger = logging.getLogger(__name__)


def append_extension(db: Session, b: Booking, new_end: datetime, additional_amount: int,
                     reason: str = "", actor: str = "system") -> BookingExtension:
    """Stage an extension of ``b`` to ``new_end``. The caller commits."""
    current_end = booking_end_at(b)
    if current_end is None:
        raise ValidationError(f"booking {b.booking_ref} has no end date to extend")
    new_end = to_local(new_end)
    if new_end <= current_end:
        raise ValidationError(
            f"new end {new_end.isoformat()} must be after current end {current_end.isoformat()}"
        )
    if additional_amount is None or additional_amount < 0:
        raise ValidationError("additional amount cannot be negative")

    new_date, new_time = split_local(new_end)
    ext = BookingExtension(
        id=str(uuid.uuid4()),
        booking_id=b.id,
        previous_end_date=b.end_date,
        previous_dropoff_time=b.dropoff_time,
        new_end_date=new_date,
        new_dropoff_time=new_time,
        additional_amount=int(additional_amount),
        reason=reason or "",
        created_by=actor or "system",
    )
    db.add(ext)
    b.end_date = new_date
    b.dropoff_time = new_time
    b.extension_fee = int(b.extension_fee or 0) + int(additional_amount)
    b.updated_by = actor or "system"
    b.updated_at = datetime.now(timezone.utc)
    apply_charges(b)
    log_audit(db, actor=actor, action="booking.extended", entity_type="booking", entity_id=b.id,
              details={"bookingRef": b.booking_ref, "extensionId": ext.id,
                       "previousEnd": current_end.isoformat(), "newEnd": new_end.isoformat(),
                       "additionalAmount": additional_amount, "reason": reason})
    return ext


def extend_booking(db: Session, booking_ref: str, new_end: datetime, additional_amount: int,
                   reason: str = "", actor: str = "system",
                   expected_version: int | None = None) -> BookingExtension:
    b = get_booking(db, booking_ref)
    check_version(b, expected_version)
    if not can_extend(b.status):
        raise ValidationError(f"booking {b.booking_ref} is {b.status}; only confirmed or in-use bookings can be extended")
    current_end = booking_end_at(b)
    if current_end is not None and to_local(new_end) > current_end + timedelta(days=settings.MAX_EXTENSION_DAYS):
        raise ValidationError(f"maximum extension is {settings.MAX_EXTENSION_DAYS} days from the current end date")

    ext = append_extension(db, b, new_end, additional_amount, reason=reason, actor=actor)
    db.add(Notification(
        id=str(uuid.uuid4()),
        type="booking_extended",
        title="Booking Extended",
        message=f"Booking {b.booking_ref} extended to {to_local(new_end).strftime('%Y-%m-%d %H:%M')} by {actor}",
        reference_type="booking",
        reference_id=b.id,
        data_json=json.dumps({
            "booking_id": b.booking_ref,
            "previous_end": current_end.isoformat() if current_end else None,
            "new_end": to_local(new_end).isoformat(),
            "additional_amount": additional_amount,
        }),
    ))
    commit_booking_changes(db, b)
    logger.info("booking %s extended to %s (+%s) by %s", booking_ref, new_end, additional_amount, actor)
    return ext


def list_extensions(db: Session, booking_ref: str) -> list[BookingExtension]:
    b = get_booking(db, booking_ref)
    return db.execute(
        select(BookingExtension)
        .where(BookingExtension.booking_id == b.id)
        .order_by(BookingExtension.created_at.asc())
    ).scalars().all()


def extension_total(db: Session, booking_id: str) -> int:
    total = db.execute(
        select(func.coalesce(func.sum(BookingExtension.additional_amount), 0))
        .where(BookingExtension.booking_id == booking_id)
    ).scalar_one()
    return int(total)
