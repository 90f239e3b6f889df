from pydantic import BaseModel
from typing import List, Optional

class PaymentIn(BaseModel):
    amount: int
    mode: str = "cash"  # cash|upi|card|bank_transfer
    recordedBy: str = "system"
    expectedVersion: Optional[int] = None

class PaymentOut(BaseModel):
    id: str
    amount: int
    mode: str
    status: str
    recordedBy: str = ""
    createdAt: str

class RefundIn(BaseModel):
    kind: str = "security_deposit"  # security_deposit|cancellation
    amount: Optional[int] = None     # cancellation refunds only; deposit refunds pay the computed amount
    mode: str = "cash"
    reason: str = ""
    recordedBy: str = "system"
    expectedVersion: Optional[int] = None

class RefundOut(BaseModel):
    id: str
    kind: str
    amount: int
    mode: str
    reason: str = ""
    recordedBy: str = ""
    createdAt: str

class LedgerMismatchOut(BaseModel):
    bookingRef: str
    cachedPaidAmount: int
    ledgerPaidAmount: int
    difference: int

class ReconciliationOut(BaseModel):
    checkedAt: str
    mismatches: List[LedgerMismatchOut]
