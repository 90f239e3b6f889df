import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from rentdesk.api.deps import get_messenger
from rentdesk.core.errors import RentalError
from rentdesk.db.session import get_db
from rentdesk.services.reminder_service import run_return_reminders

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reminders"])


@router.get("/reminders/return-reminders")
def return_reminders(db: Session = Depends(get_db), messenger=Depends(get_messenger)):
    """Cron trigger: one pass over in-use bookings, JSON summary of what was sent."""
    try:
        summary = run_return_reminders(db, messenger)
    except RentalError as exc:
        logger.error("return reminder run failed: %s", exc.message)
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message, "code": exc.code})
    except Exception as exc:
        logger.exception("return reminder run failed")
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc) or "Internal server error"})
    if summary.already_running:
        return JSONResponse(status_code=409, content=summary.as_dict())
    return summary.as_dict()
