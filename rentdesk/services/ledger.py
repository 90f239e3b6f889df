"""Payment ledger.

Payment rows are the source of truth and are never edited; ``Booking.paid_amount``
is a cached aggregate kept in step on every accepted payment. The booking row
is versioned, so two staff members recording against the same booking cannot
both win: the slower write fails with ``ConcurrencyConflict`` and nothing of it
is kept.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rentdesk.core.errors import ValidationError
from rentdesk.models.booking import Booking
from rentdesk.models.payment import Payment
from rentdesk.services.audit_service import log_audit
from rentdesk.services.booking_repository import check_version, commit_booking_changes, get_booking
from rentdesk.services.booking_state import can_accept_payment
from rentdesk.services.charges import apply_charges, calculate_charges

logger = logging.getLogger(__name__)

PAYMENT_MODES = ("cash", "upi", "card", "bank_transfer")


@dataclass(frozen=True)
class LedgerMismatch:
    booking_ref: str
    cached_paid_amount: int
    ledger_paid_amount: int

    @property
    def difference(self) -> int:
        return self.cached_paid_amount - self.ledger_paid_amount

    def as_dict(self) -> dict:
        return {
            "bookingRef": self.booking_ref,
            "cachedPaidAmount": self.cached_paid_amount,
            "ledgerPaidAmount": self.ledger_paid_amount,
            "difference": self.difference,
        }


class PaymentLedger:
    def __init__(self, db: Session):
        self.db = db

    def record_payment(self, booking_ref: str, amount: int, mode: str, recorded_by: str = "system",
                       expected_version: int | None = None) -> Payment:
        b = get_booking(self.db, booking_ref)
        check_version(b, expected_version)
        payment = self.apply_payment(b, amount, mode, recorded_by)
        commit_booking_changes(self.db, b)
        logger.info("payment %s of %s (%s) recorded on %s by %s", payment.id, amount, mode, booking_ref, recorded_by)
        return payment

    def apply_payment(self, b: Booking, amount: int, mode: str, recorded_by: str = "system") -> Payment:
        """Stage a completed payment against ``b`` without committing."""
        if amount is None or amount <= 0:
            raise ValidationError("payment amount must be greater than 0")
        if mode not in PAYMENT_MODES:
            raise ValidationError(f"payment mode must be one of {', '.join(PAYMENT_MODES)}")
        if not can_accept_payment(b.status):
            raise ValidationError(f"booking {b.booking_ref} is {b.status} and cannot take payments")
        remaining = calculate_charges(b).remaining_amount
        if amount > remaining:
            raise ValidationError(f"payment of {amount} exceeds remaining balance {remaining}")

        payment = Payment(
            id=str(uuid.uuid4()),
            booking_id=b.id,
            amount=int(amount),
            payment_mode=mode,
            status="completed",
            created_by=recorded_by or "system",
        )
        self.db.add(payment)
        b.paid_amount = int(b.paid_amount or 0) + int(amount)
        b.updated_by = recorded_by or "system"
        b.updated_at = datetime.now(timezone.utc)
        apply_charges(b)
        log_audit(self.db, actor=recorded_by, action="payment.recorded", entity_type="booking", entity_id=b.id,
                  details={"bookingRef": b.booking_ref, "paymentId": payment.id, "amount": amount, "mode": mode})
        return payment

    def list_payments(self, booking_ref: str) -> list[Payment]:
        b = get_booking(self.db, booking_ref)
        return self.db.execute(
            select(Payment).where(Payment.booking_id == b.id).order_by(Payment.created_at.asc())
        ).scalars().all()

    def ledger_total(self, booking_id: str) -> int:
        total = self.db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0))
            .where(Payment.booking_id == booking_id, Payment.status == "completed")
        ).scalar_one()
        return int(total)

    def reconcile(self) -> list[LedgerMismatch]:
        """Compare every cached paid amount with its ledger sum. Reports, never repairs."""
        sums = dict(self.db.execute(
            select(Payment.booking_id, func.sum(Payment.amount))
            .where(Payment.status == "completed")
            .group_by(Payment.booking_id)
        ).all())
        mismatches = []
        for b in self.db.execute(select(Booking).order_by(Booking.booking_ref.asc())).scalars():
            ledger = int(sums.get(b.id) or 0)
            cached = int(b.paid_amount or 0)
            if ledger != cached:
                m = LedgerMismatch(booking_ref=b.booking_ref, cached_paid_amount=cached, ledger_paid_amount=ledger)
                logger.warning("ledger mismatch on %s: cached %s, payments sum %s", b.booking_ref, cached, ledger)
                mismatches.append(m)
        return mismatches
