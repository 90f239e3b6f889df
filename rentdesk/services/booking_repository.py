"""Data-access boundary for bookings.

Raw rows are turned into normalized values here (vehicle details may be stored
as a JSON string, a dict, or a dict nested under ``vehicle``; the phone may sit
on the booking or on the linked customer) so that services never carry
fallback chains of their own.
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from rentdesk.core.errors import ConcurrencyConflict, NotFoundError
from rentdesk.core.timeutils import combine_local
from rentdesk.models.booking import Booking
from rentdesk.models.customer import Customer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VehicleInfo:
    model: str
    registration: str


@dataclass(frozen=True)
class ActiveBooking:
    id: str
    booking_ref: str
    end_at: datetime
    dropoff_time: str
    customer_name: str
    customer_phone: str | None
    vehicle: VehicleInfo | None


def normalize_vehicle(raw) -> VehicleInfo | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("unparseable vehicle details %r", raw[:80])
            return None
    if not isinstance(raw, dict):
        return None
    if isinstance(raw.get("vehicle"), dict):
        raw = raw["vehicle"]
    model = str(raw.get("model") or raw.get("vehicle_model") or "").strip()
    registration = str(raw.get("registration") or raw.get("registration_number") or "").strip()
    if not model and not registration:
        return None
    return VehicleInfo(model=model, registration=registration)


def vehicle_details_json(vehicle: VehicleInfo | dict | None) -> str:
    if vehicle is None:
        return "{}"
    if isinstance(vehicle, dict):
        vehicle = normalize_vehicle(vehicle)
        if vehicle is None:
            return "{}"
    return json.dumps({"model": vehicle.model, "registration": vehicle.registration})


def booking_end_at(b: Booking) -> datetime | None:
    if b.end_date is None:
        return None
    return combine_local(b.end_date, b.dropoff_time)


def booking_start_at(b: Booking) -> datetime:
    return combine_local(b.start_date, b.pickup_time)


def get_booking(db: Session, booking_ref: str) -> Booking:
    b = db.execute(select(Booking).where(Booking.booking_ref == booking_ref)).scalar_one_or_none()
    if not b:
        raise NotFoundError(f"booking {booking_ref} not found")
    return b


def check_version(b: Booking, expected_version: int | None) -> None:
    if expected_version is not None and expected_version != b.version_id:
        raise ConcurrencyConflict(
            f"booking {b.booking_ref} changed (version {b.version_id}, you had {expected_version}); reload and retry"
        )


def commit_booking_changes(db: Session, b: Booking) -> None:
    """Commit; a concurrent writer that bumped the version first wins."""
    ref = b.booking_ref
    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.warning("stale write rejected for booking %s", ref)
        raise ConcurrencyConflict(f"booking {ref} was modified concurrently; reload and retry") from exc


def resolve_customer_phone(db: Session, b: Booking) -> str | None:
    phone = (b.customer_contact or "").strip()
    if phone:
        return phone
    if b.customer_id:
        c = db.get(Customer, b.customer_id)
        if c and (c.contact or "").strip():
            return c.contact.strip()
    return None


def load_active_bookings(db: Session) -> list[ActiveBooking]:
    rows = db.execute(
        select(Booking)
        .where(Booking.status == "in_use", Booking.end_date.isnot(None))
        .order_by(Booking.end_date.asc(), Booking.dropoff_time.asc())
    ).scalars().all()
    out = []
    for b in rows:
        out.append(ActiveBooking(
            id=b.id,
            booking_ref=b.booking_ref,
            end_at=booking_end_at(b),
            dropoff_time=b.dropoff_time.strftime("%H:%M") if b.dropoff_time else "",
            customer_name=b.customer_name or "",
            customer_phone=resolve_customer_phone(db, b),
            vehicle=normalize_vehicle(b.vehicle_details),
        ))
    return out
