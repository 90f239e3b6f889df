from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rentdesk.core.errors import ValidationError
from rentdesk.core.timeutils import combine_local
from rentdesk.db.session import get_db
from rentdesk.models.booking import Booking
from rentdesk.models.extension import BookingExtension
from rentdesk.schemas.booking import BookingCreate, BookingOut, CompleteIn, ExtensionIn, ExtensionOut, StatusChangeIn
from rentdesk.schemas.payments import RefundIn, RefundOut
from rentdesk.services.booking_repository import get_booking, normalize_vehicle
from rentdesk.services.booking_service import create_booking
from rentdesk.services.booking_state import change_status
from rentdesk.services.charges import calculate_charges
from rentdesk.services.extension_service import extend_booking, list_extensions
from rentdesk.services.settlement_service import (
    complete_booking,
    list_refunds,
    refund_cancelled_booking,
    refund_security_deposit,
)

router = APIRouter(tags=["bookings"])


def booking_out(b: Booking) -> BookingOut:
    vehicle = normalize_vehicle(b.vehicle_details)
    return BookingOut(
        bookingRef=b.booking_ref,
        status=b.status,
        paymentStatus=b.payment_status,
        customerName=b.customer_name,
        customerContact=b.customer_contact or "",
        vehicle={"model": vehicle.model, "registration": vehicle.registration} if vehicle else None,
        startDate=b.start_date,
        pickupTime=b.pickup_time,
        endDate=b.end_date,
        dropoffTime=b.dropoff_time,
        bookingAmount=b.booking_amount,
        securityDepositAmount=b.security_deposit_amount,
        damageCharges=b.damage_charges,
        lateFee=b.late_fee,
        extensionFee=b.extension_fee,
        totalAmount=b.total_amount,
        paidAmount=b.paid_amount,
        refundAmount=b.refund_amount,
        securityDepositRefunded=bool(b.security_deposit_refunded),
        completedAt=b.completed_at.isoformat() if b.completed_at else None,
        version=b.version_id,
        charges=calculate_charges(b).as_dict(),
    )


def extension_out(e: BookingExtension) -> ExtensionOut:
    return ExtensionOut(
        id=e.id,
        previousEnd=combine_local(e.previous_end_date, e.previous_dropoff_time).isoformat(),
        newEnd=combine_local(e.new_end_date, e.new_dropoff_time).isoformat(),
        additionalAmount=e.additional_amount,
        reason=e.reason or "",
        recordedBy=e.created_by or "",
        createdAt=e.created_at.isoformat(),
    )


def refund_out(r) -> RefundOut:
    return RefundOut(id=r.id, kind=r.kind, amount=r.amount, mode=r.refund_mode, reason=r.reason or "",
                     recordedBy=r.created_by or "", createdAt=r.created_at.isoformat())


@router.post("/bookings", response_model=BookingOut, status_code=201)
def create_booking_route(body: BookingCreate, db: Session = Depends(get_db)):
    b = create_booking(
        db,
        customer_name=body.customerName,
        customer_contact=body.customerContact,
        customer_id=body.customerId,
        vehicle=body.vehicle.model_dump() if body.vehicle else None,
        start_date=body.startDate,
        pickup_time=body.pickupTime,
        end_date=body.endDate,
        dropoff_time=body.dropoffTime,
        booking_amount=body.bookingAmount,
        security_deposit_amount=body.securityDepositAmount,
        status=body.status,
        initial_payment=body.initialPayment,
        payment_mode=body.paymentMode,
        created_by=body.createdBy,
    )
    return booking_out(b)


@router.get("/bookings/{booking_ref}", response_model=BookingOut)
def get_booking_route(booking_ref: str, db: Session = Depends(get_db)):
    return booking_out(get_booking(db, booking_ref))


@router.post("/bookings/{booking_ref}/status", response_model=BookingOut)
def change_status_route(booking_ref: str, body: StatusChangeIn, db: Session = Depends(get_db)):
    b = change_status(db, booking_ref, body.status, actor=body.actor,
                      expected_version=body.expectedVersion, reason=body.reason)
    return booking_out(b)


@router.post("/bookings/{booking_ref}/extensions", response_model=ExtensionOut, status_code=201)
def extend_booking_route(booking_ref: str, body: ExtensionIn, db: Session = Depends(get_db)):
    ext = extend_booking(db, booking_ref, body.newEnd, body.additionalAmount, reason=body.reason,
                         actor=body.recordedBy, expected_version=body.expectedVersion)
    return extension_out(ext)


@router.get("/bookings/{booking_ref}/extensions")
def list_extensions_route(booking_ref: str, db: Session = Depends(get_db)):
    return {"items": [extension_out(e) for e in list_extensions(db, booking_ref)]}


@router.post("/bookings/{booking_ref}/complete", response_model=BookingOut)
def complete_booking_route(booking_ref: str, body: CompleteIn, db: Session = Depends(get_db)):
    b = complete_booking(
        db,
        booking_ref,
        damage_charges=body.damageCharges,
        damage_description=body.damageDescription,
        vehicle_remarks=body.vehicleRemarks,
        final_payment_mode=body.paymentMode,
        returned_at=body.returnedAt,
        completed_by=body.completedBy,
        expected_version=body.expectedVersion,
    )
    return booking_out(b)


@router.post("/bookings/{booking_ref}/refunds", response_model=RefundOut, status_code=201)
def refund_route(booking_ref: str, body: RefundIn, db: Session = Depends(get_db)):
    if body.kind == "security_deposit":
        r = refund_security_deposit(db, booking_ref, mode=body.mode, actor=body.recordedBy,
                                    expected_version=body.expectedVersion)
    elif body.kind == "cancellation":
        r = refund_cancelled_booking(db, booking_ref, body.amount, mode=body.mode, reason=body.reason,
                                     actor=body.recordedBy, expected_version=body.expectedVersion)
    else:
        raise ValidationError("refund kind must be security_deposit or cancellation")
    return refund_out(r)


@router.get("/bookings/{booking_ref}/refunds")
def list_refunds_route(booking_ref: str, db: Session = Depends(get_db)):
    return {"items": [refund_out(r) for r in list_refunds(db, booking_ref)]}
