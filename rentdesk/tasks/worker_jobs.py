import logging

from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session

from rentdesk.db.session import SessionLocal
from rentdesk.services.ledger import PaymentLedger
from rentdesk.services.reminder_service import run_return_reminders
from rentdesk.services.whatsapp_client import WhatsAppClient

logger = logging.getLogger(__name__)


def send_return_reminders(messenger=None):
    db: Session = SessionLocal()
    try:
        try:
            summary = run_return_reminders(db, messenger or WhatsAppClient.from_settings())
        except (ProgrammingError, OperationalError):
            # DB not migrated yet; don't crash the worker.
            db.rollback()
            logger.warning("return reminders skipped: tables are missing")
            return {"skipped": True, "reason": "missing_tables"}
        return summary.as_dict()
    finally:
        db.close()


def reconcile_payment_ledger():
    db: Session = SessionLocal()
    try:
        try:
            mismatches = PaymentLedger(db).reconcile()
        except (ProgrammingError, OperationalError):
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
        return {"mismatches": [m.as_dict() for m in mismatches]}
    finally:
        db.close()
