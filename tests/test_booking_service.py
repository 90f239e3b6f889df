from datetime import date, time

import pytest

from rentdesk.core.errors import NotFoundError, ValidationError
from rentdesk.services.booking_repository import load_active_bookings, normalize_vehicle, vehicle_details_json
from rentdesk.services.booking_service import create_booking, create_customer, make_booking_ref, next_booking_ref


def _intake(db, **overrides):
    kwargs = dict(
        customer_name="Asha Rao",
        customer_contact=" 9876543210 ",
        vehicle={"model": "Honda Activa", "registration": "KA01AB1234"},
        start_date=date(2024, 5, 30),
        pickup_time=time(10, 0),
        end_date=date(2024, 6, 1),
        dropoff_time=time(10, 0),
        booking_amount=2000,
        security_deposit_amount=1000,
    )
    kwargs.update(overrides)
    return create_booking(db, **kwargs)


def test_refs_are_zero_padded():
    assert make_booking_ref(1) == "BK000001"
    assert make_booking_ref(123456) == "BK123456"


def test_intake_defaults(db):
    b = _intake(db)
    assert b.booking_ref == "BK000001"
    assert b.status == "confirmed"
    assert b.customer_contact == "9876543210"
    assert b.total_amount == 3000
    assert b.payment_status == "pending"
    assert _intake(db).booking_ref == "BK000002"


def test_intake_with_initial_payment(db):
    b = _intake(db, initial_payment=3000, payment_mode="upi")
    assert b.paid_amount == 3000
    assert b.payment_status == "full"


@pytest.mark.parametrize("overrides", [
    {"booking_amount": -1},
    {"security_deposit_amount": -1},
    {"status": "in_use"},
    {"end_date": date(2024, 5, 30), "dropoff_time": time(9, 0)},
    {"customer_name": ""},
    {"initial_payment": 3001},
])
def test_intake_validation(db, overrides):
    with pytest.raises(ValidationError):
        _intake(db, **overrides)


def test_intake_links_customer(db):
    c = create_customer(db, "Vikram Shah", contact="9123456789", email="vikram@example.com")
    b = _intake(db, customer_name="", customer_id=c.id)
    assert b.customer_name == "Vikram Shah"
    with pytest.raises(NotFoundError):
        _intake(db, customer_id="missing")


@pytest.mark.parametrize("raw, expected", [
    ('{"model": "Activa", "registration": "KA01"}', ("Activa", "KA01")),
    ({"vehicle": {"model": "Pulsar", "registration_number": "KA02"}}, ("Pulsar", "KA02")),
    ({"vehicle_model": "Splendor"}, ("Splendor", "")),
    ("{}", None),
    ("not json", None),
    (None, None),
])
def test_vehicle_normalization(raw, expected):
    v = normalize_vehicle(raw)
    assert (None if v is None else (v.model, v.registration)) == expected


def test_vehicle_details_are_stored_flat():
    assert vehicle_details_json({"vehicle": {"model": "Pulsar", "registration": "KA02"}}) == \
        '{"model": "Pulsar", "registration": "KA02"}'
    assert vehicle_details_json(None) == "{}"


def test_active_bookings_are_normalized(db, make_booking):
    make_booking(status="in_use", vehicle={"vehicle": {"model": "Pulsar", "registration_number": "KA02"}})
    make_booking(status="confirmed")
    active = load_active_bookings(db)
    assert len(active) == 1
    assert active[0].vehicle.model == "Pulsar"
    assert active[0].customer_phone == "9876543210"
    assert active[0].end_at.isoformat() == "2024-06-01T10:00:00+05:30"


def test_refs_keep_counting_past_six_digits(db):
    b = _intake(db)
    b.booking_ref = make_booking_ref(999999)
    db.commit()
    assert _intake(db).booking_ref == "BK1000000"
    assert next_booking_ref(db) == "BK1000001"
    assert _intake(db).booking_ref == "BK1000001"
