"""What a customer owes on a booking at any point of its lifecycle.

Before completion the customer owes rent, the security deposit and every
accrued adjustment. Once the booking is completed the deposit leaves the
payable total; whatever is left of it after damage, late and extension
charges is owed back to the customer instead.

Everything here is a pure function of the booking's amounts and status.
"""
from dataclasses import dataclass

COMPLETED = "completed"


@dataclass(frozen=True)
class ChargeSummary:
    total_payable: int
    paid_amount: int
    remaining_amount: int
    payment_status: str
    total_revenue: int
    adjustments: int
    security_deposit_to_return: int
    overpaid_amount: int

    @property
    def is_overpaid(self) -> bool:
        return self.overpaid_amount > 0

    def as_dict(self) -> dict:
        return {
            "totalPayable": self.total_payable,
            "paidAmount": self.paid_amount,
            "remainingAmount": self.remaining_amount,
            "paymentStatus": self.payment_status,
            "totalRevenue": self.total_revenue,
            "securityDepositToReturn": self.security_deposit_to_return,
            "overpaidAmount": self.overpaid_amount,
        }


def _amount(booking, field: str) -> int:
    return int(getattr(booking, field, 0) or 0)


def payment_status_for(total_payable: int, paid_amount: int) -> str:
    remaining = max(0, total_payable - paid_amount)
    if remaining == 0:
        return "full"
    if 0 < paid_amount < total_payable:
        return "partial"
    return "pending"


def calculate_charges(booking) -> ChargeSummary:
    booking_amount = _amount(booking, "booking_amount")
    deposit = _amount(booking, "security_deposit_amount")
    adjustments = (
        _amount(booking, "damage_charges")
        + _amount(booking, "late_fee")
        + _amount(booking, "extension_fee")
    )
    paid = _amount(booking, "paid_amount")
    total_revenue = booking_amount + adjustments
    deposit_to_return = max(0, deposit - adjustments)

    if getattr(booking, "status", None) == COMPLETED:
        total_payable = total_revenue
        refund_due = deposit_to_return
    else:
        total_payable = booking_amount + deposit + adjustments
        refund_due = 0

    return ChargeSummary(
        total_payable=total_payable,
        paid_amount=paid,
        remaining_amount=max(0, total_payable - paid),
        payment_status=payment_status_for(total_payable, paid),
        total_revenue=total_revenue,
        adjustments=adjustments,
        security_deposit_to_return=deposit_to_return,
        overpaid_amount=max(0, paid - total_payable - refund_due),
    )


def apply_charges(booking) -> ChargeSummary:
    """Refresh the booking's cached total and payment status."""
    summary = calculate_charges(booking)
    booking.total_amount = summary.total_payable
    booking.payment_status = summary.payment_status
    return summary
