from types import SimpleNamespace

from rentdesk.services.charges import apply_charges, calculate_charges, payment_status_for


def _booking(status="in_use", booking_amount=2000, deposit=1000, damage=0, late=0, extension=0, paid=0):
    return SimpleNamespace(
        status=status,
        booking_amount=booking_amount,
        security_deposit_amount=deposit,
        damage_charges=damage,
        late_fee=late,
        extension_fee=extension,
        paid_amount=paid,
        total_amount=0,
        payment_status="pending",
    )


def test_open_booking_owes_rent_deposit_and_adjustments():
    for status in ("pending", "confirmed", "in_use"):
        s = calculate_charges(_booking(status=status, damage=100, late=200, extension=300, paid=500))
        assert s.total_payable == 2000 + 1000 + 100 + 200 + 300
        assert s.remaining_amount == 3600 - 500
        assert s.payment_status == "partial"
        assert s.security_deposit_to_return == 400


def test_completed_booking_returns_what_is_left_of_the_deposit():
    s = calculate_charges(_booking(status="completed", damage=300, paid=3000))
    assert s.total_revenue == 2300
    assert s.total_payable == 2300
    assert s.security_deposit_to_return == 700
    assert s.remaining_amount == 0
    assert s.payment_status == "full"
    assert not s.is_overpaid


def test_deposit_to_return_is_clamped_at_zero():
    s = calculate_charges(_booking(status="completed", damage=1200, paid=3000))
    assert s.security_deposit_to_return == 0
    assert s.total_payable == 3200
    assert s.remaining_amount == 200


def test_overpaid_when_paid_exceeds_revenue_and_refund():
    s = calculate_charges(_booking(status="completed", paid=3500))
    assert s.security_deposit_to_return == 1000
    assert s.overpaid_amount == 500
    assert s.is_overpaid


def test_payment_status_thresholds():
    assert payment_status_for(3000, 0) == "pending"
    assert payment_status_for(3000, 1) == "partial"
    assert payment_status_for(3000, 3000) == "full"
    assert payment_status_for(3000, 3200) == "full"
    assert payment_status_for(0, 0) == "full"


def test_calculation_is_repeatable():
    b = _booking(damage=50, paid=700)
    assert calculate_charges(b) == calculate_charges(b)


def test_apply_charges_refreshes_cached_fields():
    b = _booking(paid=3000)
    apply_charges(b)
    assert b.total_amount == 3000
    assert b.payment_status == "full"
    assert calculate_charges(b).as_dict()["remainingAmount"] == 0
