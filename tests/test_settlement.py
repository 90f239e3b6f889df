from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest

from rentdesk.core.errors import ConcurrencyConflict, InvalidStateTransition, ValidationError
from rentdesk.models.vehicle_damage import VehicleDamage
from rentdesk.services.booking_repository import get_booking
from rentdesk.services.booking_state import change_status
from rentdesk.services.charges import calculate_charges
from rentdesk.services.extension_service import extension_total, list_extensions
from rentdesk.services.ledger import PaymentLedger
from rentdesk.services.settings_service import FeeSettings, set_fee_settings
from rentdesk.services.settlement_service import (
    calculate_return_fees,
    complete_booking,
    list_refunds,
    refund_cancelled_booking,
    refund_security_deposit,
)

IST = ZoneInfo("Asia/Kolkata")
ON_TIME = datetime(2024, 6, 1, 10, 0, tzinfo=IST)
FEES = FeeSettings(late_fee_amount=1000, late_fee_grace_period_hours=2,
                   extension_fee_amount=1000, extension_fee_threshold_hours=6)


def test_deposit_refund_after_damage(db, make_booking):
    b = make_booking(status="in_use", paid=3000)
    b = complete_booking(db, b.booking_ref, damage_charges=300, damage_description="scratched mirror",
                         returned_at=ON_TIME, completed_by="desk")
    assert b.status == "completed"
    assert b.completed_at is not None
    assert b.refund_amount == 700
    s = calculate_charges(b)
    assert s.total_payable == 2300
    assert s.security_deposit_to_return == 700
    assert s.remaining_amount == 0


def test_damage_beyond_deposit_leaves_nothing_to_refund(db, make_booking):
    b = make_booking(status="in_use", paid=3000)
    b = complete_booking(db, b.booking_ref, damage_charges=1200, returned_at=ON_TIME)
    assert b.refund_amount == 0
    # The shortfall can still be settled after completion
    assert calculate_charges(b).remaining_amount == 200
    PaymentLedger(db).record_payment(b.booking_ref, 200, "upi")
    assert get_booking(db, b.booking_ref).payment_status == "full"


def test_outstanding_balance_needs_a_final_payment(db, make_booking):
    b = make_booking(status="in_use", paid=1000)
    with pytest.raises(ValidationError):
        complete_booking(db, b.booking_ref, returned_at=ON_TIME)
    assert get_booking(db, b.booking_ref).status == "in_use"

    b = complete_booking(db, b.booking_ref, final_payment_mode="cash", returned_at=ON_TIME)
    assert b.paid_amount == 3000
    assert len(PaymentLedger(db).list_payments(b.booking_ref)) == 2
    assert b.refund_amount == 1000


def test_second_completion_fails(db, make_booking):
    b = make_booking(status="in_use", paid=3000)
    complete_booking(db, b.booking_ref, returned_at=ON_TIME)
    with pytest.raises(InvalidStateTransition) as exc:
        complete_booking(db, b.booking_ref, returned_at=ON_TIME)
    assert exc.value.current == "completed"


def test_racing_completions_settle_once(session_factory, make_booking):
    ref = make_booking(status="in_use", paid=3000).booking_ref
    first, second = session_factory(), session_factory()
    try:
        # Both desks have the in-use booking open before either completes it
        held = (get_booking(first, ref), get_booking(second, ref))  # noqa: F841
        complete_booking(first, ref, damage_charges=100, returned_at=ON_TIME, completed_by="desk-1")
        with pytest.raises(ConcurrencyConflict):
            complete_booking(second, ref, damage_charges=900, returned_at=ON_TIME, completed_by="desk-2")

        check = session_factory()
        b = get_booking(check, ref)
        assert b.status == "completed"
        assert b.damage_charges == 100
        assert b.completed_by == "desk-1"
        assert b.refund_amount == 900
        assert check.query(VehicleDamage).count() == 1
        check.close()
    finally:
        first.close()
        second.close()


def test_only_in_use_bookings_complete(db, make_booking):
    b = make_booking(paid=3000)
    with pytest.raises(InvalidStateTransition):
        complete_booking(db, b.booking_ref, returned_at=ON_TIME)


def test_negative_damage_rejected(db, make_booking):
    b = make_booking(status="in_use", paid=3000)
    with pytest.raises(ValidationError):
        complete_booking(db, b.booking_ref, damage_charges=-1, returned_at=ON_TIME)


def test_return_inside_grace_period_is_free():
    fees = calculate_return_fees(ON_TIME, ON_TIME + timedelta(hours=2), FEES)
    assert (fees.late_fee, fees.extension_fee) == (0, 0)
    early = calculate_return_fees(ON_TIME, ON_TIME - timedelta(hours=1), FEES)
    assert early.hours_late == 0


def test_late_return_same_day():
    fees = calculate_return_fees(ON_TIME, ON_TIME + timedelta(hours=3), FEES)
    assert fees.late_fee == 1000
    assert fees.extension_fee == 0


def test_return_past_threshold_or_next_day_adds_extension_fee():
    assert calculate_return_fees(ON_TIME, ON_TIME + timedelta(hours=7), FEES).extension_fee == 1000
    late_evening = datetime(2024, 6, 1, 22, 0, tzinfo=IST)
    overnight = calculate_return_fees(late_evening, late_evening + timedelta(hours=1), FEES)
    assert overnight.late_fee == 0
    assert overnight.extension_fee == 1000


def test_overnight_return_is_booked_as_an_extension(db, make_booking):
    b = make_booking(status="in_use", paid=3000, dropoff=time(22, 0))
    returned = datetime(2024, 6, 2, 0, 30, tzinfo=IST)
    b = complete_booking(db, b.booking_ref, returned_at=returned)
    assert b.late_fee == 1000
    assert b.extension_fee == 1000
    assert b.refund_amount == 0
    history = list_extensions(db, b.booking_ref)
    assert len(history) == 1
    assert history[0].new_end_date.isoformat() == "2024-06-02"
    assert extension_total(db, b.id) == b.extension_fee


def test_configured_fees_are_used(db, make_booking):
    set_fee_settings(db, late_fee_amount=250, grace_period_hours=1, extension_fee_amount=600, threshold_hours=6)
    b = make_booking(status="in_use", paid=3000)
    b = complete_booking(db, b.booking_ref, returned_at=ON_TIME + timedelta(minutes=90))
    assert b.late_fee == 250
    assert b.extension_fee == 0
    assert b.refund_amount == 750


def test_damage_is_recorded_against_the_vehicle(db, make_booking):
    b = make_booking(status="in_use", paid=3000)
    complete_booking(db, b.booking_ref, damage_charges=400, damage_description="dent on tank", returned_at=ON_TIME)
    rows = db.query(VehicleDamage).all()
    assert len(rows) == 1
    assert rows[0].registration_number == "KA01AB1234"
    assert rows[0].charges == 400


def test_security_deposit_refund_once(db, make_booking):
    b = make_booking(status="in_use", paid=3000)
    complete_booking(db, b.booking_ref, damage_charges=300, returned_at=ON_TIME)
    r = refund_security_deposit(db, b.booking_ref, mode="upi", actor="desk")
    assert r.amount == 700
    assert get_booking(db, b.booking_ref).security_deposit_refunded
    with pytest.raises(ValidationError):
        refund_security_deposit(db, b.booking_ref, mode="upi")
    assert len(list_refunds(db, b.booking_ref)) == 1
    # Refunds never touch the payment ledger
    assert get_booking(db, b.booking_ref).paid_amount == 3000


def test_deposit_refund_waits_for_completion(db, make_booking):
    b = make_booking(status="in_use", paid=3000)
    with pytest.raises(ValidationError):
        refund_security_deposit(db, b.booking_ref)


def test_cancellation_refund_limited_to_what_was_paid(db, make_booking):
    b = make_booking(paid=500)
    change_status(db, b.booking_ref, "cancelled", reason="no show")
    refund_cancelled_booking(db, b.booking_ref, 300, mode="cash", reason="partial goodwill")
    with pytest.raises(ValidationError):
        refund_cancelled_booking(db, b.booking_ref, 300, mode="cash")
    refund_cancelled_booking(db, b.booking_ref, 200, mode="cash")
    assert sum(r.amount for r in list_refunds(db, b.booking_ref)) == 500


def test_cancellation_refund_needs_cancelled_booking(db, make_booking):
    b = make_booking(paid=500)
    with pytest.raises(ValidationError):
        refund_cancelled_booking(db, b.booking_ref, 100)
