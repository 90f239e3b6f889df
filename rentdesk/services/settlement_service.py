"""Completion and settlement of bookings.

Completing a booking is one transaction: any outstanding balance is collected
first, return fees are assessed against the scheduled end, damage is charged,
the deposit refund is fixed and the status moves to completed. The write is
conditioned on the booking version read at the start, so a second completion
racing the first fails instead of settling twice.

Refunds are separate, manual operations recorded as their own rows.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rentdesk.core.errors import InvalidStateTransition, ValidationError
from rentdesk.core.timeutils import now_local, to_local
from rentdesk.models.booking import Booking
from rentdesk.models.refund import Refund
from rentdesk.models.vehicle_damage import VehicleDamage
from rentdesk.services.audit_service import log_audit
from rentdesk.services.booking_repository import (
    booking_end_at,
    check_version,
    commit_booking_changes,
    get_booking,
    normalize_vehicle,
)
from rentdesk.services.booking_state import CANCELLED, COMPLETED, IN_USE
from rentdesk.services.charges import apply_charges, calculate_charges
from rentdesk.services.extension_service import append_extension
from rentdesk.services.ledger import PAYMENT_MODES, PaymentLedger
from rentdesk.services.settings_service import FeeSettings, get_fee_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReturnFees:
    hours_late: float
    late_fee: int
    extension_fee: int


def calculate_return_fees(expected_return: datetime, actual_return: datetime, fees: FeeSettings) -> ReturnFees:
    """Flat late fee past the grace period; flat extension fee for an overnight
    return (after the scheduled return day ends) or one later than the threshold."""
    expected_return = to_local(expected_return)
    actual_return = to_local(actual_return)
    hours_late = (actual_return - expected_return).total_seconds() / 3600

    late_fee = 0
    if actual_return > expected_return + timedelta(hours=fees.late_fee_grace_period_hours):
        late_fee = fees.late_fee_amount

    extension_fee = 0
    after_return_day = actual_return.date() > expected_return.date()
    if after_return_day or hours_late > fees.extension_fee_threshold_hours:
        extension_fee = fees.extension_fee_amount

    return ReturnFees(hours_late=max(0.0, hours_late), late_fee=late_fee, extension_fee=extension_fee)


def complete_booking(db: Session, booking_ref: str, damage_charges: int = 0, damage_description: str = "",
                     vehicle_remarks: str = "", final_payment_mode: str | None = None,
                     returned_at: datetime | None = None, completed_by: str = "system",
                     expected_version: int | None = None) -> Booking:
    b = get_booking(db, booking_ref)
    check_version(b, expected_version)
    if b.status != IN_USE:
        raise InvalidStateTransition(b.status, COMPLETED)
    if damage_charges is None or damage_charges < 0:
        raise ValidationError("damage charges cannot be negative")

    returned_at = to_local(returned_at) if returned_at else now_local()
    fees = get_fee_settings(db)

    final_payment = None
    outstanding = calculate_charges(b).remaining_amount
    if outstanding > 0:
        if not final_payment_mode:
            raise ValidationError(
                f"booking {b.booking_ref} has {outstanding} outstanding; a final payment mode is required to complete it"
            )
        final_payment = PaymentLedger(db).apply_payment(b, outstanding, final_payment_mode, completed_by)

    return_fees = ReturnFees(hours_late=0.0, late_fee=0, extension_fee=0)
    expected_end = booking_end_at(b)
    if expected_end is not None:
        return_fees = calculate_return_fees(expected_end, returned_at, fees)
        if return_fees.extension_fee:
            append_extension(db, b, returned_at, return_fees.extension_fee,
                             reason="returned after the scheduled return day", actor=completed_by)

    b.damage_charges = int(damage_charges)
    b.late_fee = return_fees.late_fee
    b.damage_description = damage_description or ""
    b.vehicle_remarks = vehicle_remarks or ""
    b.returned_at = returned_at.astimezone(timezone.utc)
    b.status = COMPLETED
    b.completed_at = datetime.now(timezone.utc)
    b.completed_by = completed_by or "system"
    b.updated_by = completed_by or "system"
    b.updated_at = b.completed_at
    summary = apply_charges(b)
    b.refund_amount = summary.security_deposit_to_return

    if damage_charges or damage_description:
        vehicle = normalize_vehicle(b.vehicle_details)
        db.add(VehicleDamage(
            id=str(uuid.uuid4()),
            booking_id=b.id,
            registration_number=vehicle.registration if vehicle else "",
            description=damage_description or "",
            charges=int(damage_charges),
        ))

    log_audit(db, actor=completed_by, action="booking.completed", entity_type="booking", entity_id=b.id,
              details={
                  "bookingRef": b.booking_ref,
                  "finalPaymentId": final_payment.id if final_payment else None,
                  "finalPaymentAmount": outstanding if final_payment else 0,
                  "damageCharges": damage_charges,
                  "lateFee": return_fees.late_fee,
                  "returnExtensionFee": return_fees.extension_fee,
                  "hoursLate": round(return_fees.hours_late, 2),
                  "refundAmount": b.refund_amount,
              })
    commit_booking_changes(db, b)
    logger.info("booking %s completed by %s (damage %s, late fee %s, refund %s)",
                booking_ref, completed_by, damage_charges, return_fees.late_fee, summary.security_deposit_to_return)
    if summary.remaining_amount:
        logger.info("booking %s completed with %s still owed beyond the deposit", booking_ref, summary.remaining_amount)
    return b


def _refunded_total(db: Session, booking_id: str, kind: str) -> int:
    total = db.execute(
        select(func.coalesce(func.sum(Refund.amount), 0))
        .where(Refund.booking_id == booking_id, Refund.kind == kind)
    ).scalar_one()
    return int(total)


def _stage_refund(db: Session, b: Booking, kind: str, amount: int, mode: str, reason: str, actor: str) -> Refund:
    if mode not in PAYMENT_MODES:
        raise ValidationError(f"refund mode must be one of {', '.join(PAYMENT_MODES)}")
    r = Refund(
        id=str(uuid.uuid4()),
        booking_id=b.id,
        kind=kind,
        amount=int(amount),
        refund_mode=mode,
        reason=reason or "",
        created_by=actor or "system",
    )
    db.add(r)
    # Touch the booking so concurrent refunds collide on its version
    b.updated_by = actor or "system"
    b.updated_at = datetime.now(timezone.utc)
    log_audit(db, actor=actor, action=f"refund.{kind}", entity_type="booking", entity_id=b.id,
              details={"bookingRef": b.booking_ref, "refundId": r.id, "amount": amount, "mode": mode, "reason": reason})
    return r


def refund_security_deposit(db: Session, booking_ref: str, mode: str = "cash", actor: str = "system",
                            expected_version: int | None = None) -> Refund:
    b = get_booking(db, booking_ref)
    check_version(b, expected_version)
    if b.status != COMPLETED:
        raise ValidationError(f"booking {b.booking_ref} is {b.status}; the deposit is refunded after completion")
    if b.security_deposit_refunded:
        raise ValidationError(f"security deposit for {b.booking_ref} was already refunded")
    amount = int(b.refund_amount or 0)
    if amount <= 0:
        raise ValidationError(f"nothing to refund on {b.booking_ref}; the deposit was used up by charges")
    r = _stage_refund(db, b, "security_deposit", amount, mode, "security deposit refund", actor)
    b.security_deposit_refunded = True
    commit_booking_changes(db, b)
    logger.info("refunded deposit %s on %s by %s", amount, booking_ref, actor)
    return r


def refund_cancelled_booking(db: Session, booking_ref: str, amount: int, mode: str = "cash", reason: str = "",
                             actor: str = "system", expected_version: int | None = None) -> Refund:
    b = get_booking(db, booking_ref)
    check_version(b, expected_version)
    if b.status != CANCELLED:
        raise ValidationError(f"booking {b.booking_ref} is {b.status}; only cancelled bookings take cancellation refunds")
    if amount is None or amount <= 0:
        raise ValidationError("refund amount must be greater than 0")
    refundable = int(b.paid_amount or 0) - _refunded_total(db, b.id, "cancellation")
    if amount > refundable:
        raise ValidationError(f"refund of {amount} exceeds refundable balance {max(0, refundable)}")
    r = _stage_refund(db, b, "cancellation", amount, mode, reason, actor)
    commit_booking_changes(db, b)
    logger.info("refunded %s on cancelled booking %s by %s", amount, booking_ref, actor)
    return r


def list_refunds(db: Session, booking_ref: str) -> list[Refund]:
    b = get_booking(db, booking_ref)
    return db.execute(
        select(Refund).where(Refund.booking_id == b.id).order_by(Refund.created_at.asc())
    ).scalars().all()
