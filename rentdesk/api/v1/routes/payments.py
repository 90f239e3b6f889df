from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rentdesk.db.session import get_db
from rentdesk.models.payment import Payment
from rentdesk.schemas.payments import PaymentIn, PaymentOut
from rentdesk.services.booking_repository import get_booking
from rentdesk.services.charges import calculate_charges
from rentdesk.services.ledger import PaymentLedger

router = APIRouter(tags=["payments"])


def payment_out(p: Payment) -> PaymentOut:
    return PaymentOut(id=p.id, amount=p.amount, mode=p.payment_mode, status=p.status,
                      recordedBy=p.created_by or "", createdAt=p.created_at.isoformat())


@router.post("/bookings/{booking_ref}/payments", status_code=201)
def record_payment_route(booking_ref: str, body: PaymentIn, db: Session = Depends(get_db)):
    ledger = PaymentLedger(db)
    p = ledger.record_payment(booking_ref, body.amount, body.mode, recorded_by=body.recordedBy,
                              expected_version=body.expectedVersion)
    b = get_booking(db, booking_ref)
    return {
        "payment": payment_out(p),
        "charges": calculate_charges(b).as_dict(),
        "version": b.version_id,
    }


@router.get("/bookings/{booking_ref}/payments")
def list_payments_route(booking_ref: str, db: Session = Depends(get_db)):
    ledger = PaymentLedger(db)
    return {"items": [payment_out(p) for p in ledger.list_payments(booking_ref)]}
