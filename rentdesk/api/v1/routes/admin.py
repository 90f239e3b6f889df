from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rentdesk.db.session import get_db
from rentdesk.schemas.payments import ReconciliationOut
from rentdesk.schemas.settings import FeeSettingsIn, ReminderSettingsIn, ReminderSettingsOut
from rentdesk.services.ledger import PaymentLedger
from rentdesk.services.settings_service import (
    get_fee_settings,
    get_reminder_config,
    set_fee_settings,
    set_reminder_config,
)

router = APIRouter(tags=["admin"])


def _reminder_out(cfg) -> ReminderSettingsOut:
    return ReminderSettingsOut(enabled=cfg.enabled, intervals=cfg.intervals,
                               hoursBefore=cfg.hours_before, lookbackHours=cfg.lookback_hours)


@router.get("/settings/fees")
def get_fees(db: Session = Depends(get_db)):
    return get_fee_settings(db).as_dict()


@router.put("/settings/fees")
def put_fees(body: FeeSettingsIn, db: Session = Depends(get_db)):
    fees = set_fee_settings(
        db,
        late_fee_amount=body.lateFee.amount,
        grace_period_hours=body.lateFee.gracePeriodHours,
        extension_fee_amount=body.extensionFee.amount,
        threshold_hours=body.extensionFee.thresholdHours,
    )
    return fees.as_dict()


@router.get("/settings/reminders", response_model=ReminderSettingsOut)
def get_reminders(db: Session = Depends(get_db)):
    return _reminder_out(get_reminder_config(db))


@router.put("/settings/reminders", response_model=ReminderSettingsOut)
def put_reminders(body: ReminderSettingsIn, db: Session = Depends(get_db)):
    return _reminder_out(set_reminder_config(db, body.enabled, body.intervals, body.lookbackHours))


@router.get("/ledger/reconciliation", response_model=ReconciliationOut)
def ledger_reconciliation(db: Session = Depends(get_db)):
    mismatches = PaymentLedger(db).reconcile()
    return ReconciliationOut(
        checkedAt=datetime.now(timezone.utc).isoformat(),
        mismatches=[m.as_dict() for m in mismatches],
    )
