import logging
import re
import uuid
from datetime import date, time

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rentdesk.core.errors import NotFoundError, ValidationError
from rentdesk.core.timeutils import combine_local
from rentdesk.models.booking import Booking
from rentdesk.models.customer import Customer
from rentdesk.services.audit_service import log_audit
from rentdesk.services.booking_repository import vehicle_details_json
from rentdesk.services.booking_state import CONFIRMED, PENDING
from rentdesk.services.charges import apply_charges
from rentdesk.services.ledger import PaymentLedger

logger = logging.getLogger(__name__)

REF_PREFIX = "BK"
REF_DIGITS = 6
_REF_RE = re.compile(rf"^{REF_PREFIX}(\d+)$")


def make_booking_ref(seq: int) -> str:
    return f"{REF_PREFIX}{seq:0{REF_DIGITS}d}"


def next_booking_ref(db: Session) -> str:
    last = db.execute(
        select(Booking.booking_ref)
        .where(Booking.booking_ref.like(f"{REF_PREFIX}%"))
        # Longer refs are larger numbers once the counter outgrows the padding
        .order_by(func.length(Booking.booking_ref).desc(), Booking.booking_ref.desc())
        .limit(1)
    ).scalar_one_or_none()
    m = _REF_RE.match(last or "")
    return make_booking_ref(int(m.group(1)) + 1 if m else 1)


def create_booking(db: Session, *, customer_name: str = "", customer_contact: str = "",
                   customer_id: str | None = None, vehicle: dict | None = None,
                   start_date: date, pickup_time: time, end_date: date, dropoff_time: time,
                   booking_amount: int, security_deposit_amount: int = 0, status: str = CONFIRMED,
                   initial_payment: int = 0, payment_mode: str = "cash", created_by: str = "system") -> Booking:
    if status not in (PENDING, CONFIRMED):
        raise ValidationError("new bookings start as pending or confirmed")
    if booking_amount is None or booking_amount < 0 or security_deposit_amount is None or security_deposit_amount < 0:
        raise ValidationError("booking amount and security deposit must be >= 0")
    if combine_local(end_date, dropoff_time) <= combine_local(start_date, pickup_time):
        raise ValidationError("rental must end after it starts")
    if customer_id:
        customer = db.get(Customer, customer_id)
        if not customer:
            raise NotFoundError(f"customer {customer_id} not found")
        customer_name = customer_name or customer.name
    if not customer_name:
        raise ValidationError("customer name is required")

    # booking_ref must be unique; a concurrent intake may take the same number
    for _ in range(10):
        b = Booking(
            id=str(uuid.uuid4()),
            booking_ref=next_booking_ref(db),
            customer_id=customer_id,
            customer_name=customer_name,
            customer_contact=(customer_contact or "").strip(),
            vehicle_details=vehicle_details_json(vehicle),
            start_date=start_date,
            pickup_time=pickup_time,
            end_date=end_date,
            dropoff_time=dropoff_time,
            booking_amount=int(booking_amount),
            security_deposit_amount=int(security_deposit_amount),
            damage_charges=0,
            late_fee=0,
            extension_fee=0,
            paid_amount=0,
            refund_amount=0,
            status=status,
            created_by=created_by or "system",
            updated_by=created_by or "system",
        )
        apply_charges(b)
        db.add(b)
        try:
            db.flush()
            break
        except IntegrityError:
            db.rollback()
    else:
        raise ValidationError("could not allocate booking reference")

    if initial_payment:
        PaymentLedger(db).apply_payment(b, initial_payment, payment_mode, created_by)
    log_audit(db, actor=created_by, action="booking.created", entity_type="booking", entity_id=b.id,
              details={"bookingRef": b.booking_ref, "status": status, "initialPayment": initial_payment})
    db.commit()
    db.refresh(b)
    logger.info("booking %s created for %s by %s", b.booking_ref, customer_name, created_by)
    return b


def create_customer(db: Session, name: str, contact: str = "", email: str = "") -> Customer:
    if not name:
        raise ValidationError("customer name is required")
    c = Customer(id=str(uuid.uuid4()), name=name, contact=(contact or "").strip(), email=email or "")
    db.add(c)
    db.commit()
    return c
