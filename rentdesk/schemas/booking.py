from datetime import date, datetime, time
from pydantic import BaseModel
from typing import Optional

class VehicleIn(BaseModel):
    model: str = ""
    registration: str = ""

class BookingCreate(BaseModel):
    customerName: str = ""
    customerContact: str = ""
    customerId: Optional[str] = None
    vehicle: Optional[VehicleIn] = None
    startDate: date
    pickupTime: time
    endDate: date
    dropoffTime: time
    bookingAmount: int
    securityDepositAmount: int = 0
    status: str = "confirmed"  # pending|confirmed
    initialPayment: int = 0
    paymentMode: str = "cash"
    createdBy: str = "system"

class ChargesOut(BaseModel):
    totalPayable: int
    paidAmount: int
    remainingAmount: int
    paymentStatus: str
    totalRevenue: int
    securityDepositToReturn: int
    overpaidAmount: int = 0

class BookingOut(BaseModel):
    bookingRef: str
    status: str
    paymentStatus: str
    customerName: str
    customerContact: str = ""
    vehicle: Optional[VehicleIn] = None
    startDate: date
    pickupTime: time
    endDate: Optional[date] = None
    dropoffTime: Optional[time] = None
    bookingAmount: int
    securityDepositAmount: int
    damageCharges: int = 0
    lateFee: int = 0
    extensionFee: int = 0
    totalAmount: int
    paidAmount: int
    refundAmount: int = 0
    securityDepositRefunded: bool = False
    completedAt: Optional[str] = None
    version: int
    charges: ChargesOut

class StatusChangeIn(BaseModel):
    status: str
    reason: str = ""
    actor: str = "system"
    expectedVersion: Optional[int] = None

class ExtensionIn(BaseModel):
    newEnd: datetime  # naive values are business-local
    additionalAmount: int = 0
    reason: str = ""
    recordedBy: str = "system"
    expectedVersion: Optional[int] = None

class ExtensionOut(BaseModel):
    id: str
    previousEnd: str
    newEnd: str
    additionalAmount: int
    reason: str = ""
    recordedBy: str = ""
    createdAt: str

class CompleteIn(BaseModel):
    damageCharges: int = 0
    damageDescription: str = ""
    vehicleRemarks: str = ""
    paymentMode: Optional[str] = None  # required when a balance is outstanding
    returnedAt: Optional[datetime] = None
    completedBy: str = "system"
    expectedVersion: Optional[int] = None
