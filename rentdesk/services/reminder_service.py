"""Return reminders for vehicles currently out on rent.

Each configured interval I (hours before the scheduled return) opens a one-hour
window ``I - 1 < hours_until_return <= I``. A run sends at most one reminder per
booking and interval: a reminder already logged for the same bucket inside the
lookback window suppresses another. The job has to be polled more often than
once an hour or a window can pass between two runs unseen.

Runs are sequential, paced between sends, bounded by a wall-clock timeout and
guarded by a lease lock so two triggers never overlap.
"""
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from rentdesk.core.config import settings
from rentdesk.core.errors import ExternalDispatchError
from rentdesk.core.timeutils import now_local, to_local, to_utc
from rentdesk.models.notification import Notification
from rentdesk.services.booking_repository import ActiveBooking, load_active_bookings
from rentdesk.services.job_lock_service import acquire_job_lock, release_job_lock
from rentdesk.services.settings_service import get_reminder_config
from rentdesk.services.whatsapp_client import DispatchResult, ReturnReminderDetails

logger = logging.getLogger(__name__)

JOB_NAME = "return_reminders"
REMINDER_TYPE = "return_reminder"


@dataclass
class ReminderOutcome:
    booking_id: str
    status: str  # sent, skipped, failed
    reason: str | None = None
    interval_hours: float | None = None
    customer_phone: str | None = None
    error: str | None = None

    def as_dict(self) -> dict:
        return {k: v for k, v in {
            "bookingId": self.booking_id,
            "status": self.status,
            "reason": self.reason,
            "intervalHours": self.interval_hours,
            "customerPhone": self.customer_phone,
            "error": self.error,
        }.items() if v is not None}


@dataclass
class ReminderRunSummary:
    success: bool
    message: str
    timestamp: str
    total_bookings: int = 0
    processed: int = 0
    sent: int = 0
    results: list[ReminderOutcome] = field(default_factory=list)
    timed_out: bool = False
    already_running: bool = False

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "totalBookings": self.total_bookings,
            "processed": self.processed,
            "sent": self.sent,
            "results": [r.as_dict() for r in self.results],
            "timedOut": self.timed_out,
            "alreadyRunning": self.already_running,
            "timestamp": self.timestamp,
        }


def hours_until(end_at: datetime, now: datetime) -> float:
    return (end_at - now).total_seconds() / 3600


def due_interval(hours_until_return: float, intervals: list[float]) -> float | None:
    """The reminder bucket whose one-hour window contains ``hours_until_return``."""
    for interval in sorted(intervals):
        if interval - 1 < hours_until_return <= interval:
            return interval
    return None


class ReturnReminderScheduler:
    def __init__(self, db: Session, messenger, *, send_delay_seconds: float | None = None,
                 run_timeout_seconds: float | None = None, return_location: str | None = None,
                 sleep: Callable[[float], None] = time.sleep,
                 monotonic: Callable[[], float] = time.monotonic):
        self.db = db
        self.messenger = messenger
        self.send_delay_seconds = (
            settings.REMINDER_SEND_DELAY_SECONDS if send_delay_seconds is None else send_delay_seconds
        )
        self.run_timeout_seconds = (
            settings.REMINDER_RUN_TIMEOUT_SECONDS if run_timeout_seconds is None else run_timeout_seconds
        )
        self.return_location = return_location or settings.RETURN_LOCATION
        self.sleep = sleep
        self.monotonic = monotonic

    def run(self, now: datetime | None = None) -> ReminderRunSummary:
        now = to_local(now) if now else now_local()
        stamp = now.isoformat()
        logger.info("return reminder run starting at %s", stamp)

        config = get_reminder_config(self.db)
        if not config.enabled:
            logger.info("return reminders are disabled")
            return ReminderRunSummary(success=True, message="Return reminders are disabled", timestamp=stamp)

        bookings = load_active_bookings(self.db)
        summary = ReminderRunSummary(success=True, message="Return reminder process completed",
                                     timestamp=stamp, total_bookings=len(bookings))
        if not bookings:
            summary.message = "No active bookings to process"
            return summary

        deadline = self.monotonic() + self.run_timeout_seconds
        dispatched = 0
        for booking in bookings:
            if self.monotonic() >= deadline:
                summary.timed_out = True
                logger.warning("return reminder run hit its %ss limit; remaining bookings wait for the next run",
                               self.run_timeout_seconds)
                break

            interval = due_interval(hours_until(booking.end_at, now), config.intervals)
            if interval is None:
                continue

            if self._already_sent(booking.id, interval, now, config.lookback_hours):
                logger.info("booking %s: %sh reminder already sent", booking.booking_ref, interval)
                summary.results.append(ReminderOutcome(booking.booking_ref, "skipped", reason="already_sent",
                                                       interval_hours=interval))
                continue

            phone = booking.customer_phone
            if not phone:
                logger.info("booking %s: no customer phone number", booking.booking_ref)
                summary.results.append(ReminderOutcome(booking.booking_ref, "skipped", reason="no_phone",
                                                       interval_hours=interval))
                continue

            if dispatched and self.send_delay_seconds:
                self.sleep(self.send_delay_seconds)
            dispatched += 1
            summary.processed += 1
            outcome = self._dispatch(booking, interval, phone, now)
            if outcome.status == "sent":
                summary.sent += 1
            summary.results.append(outcome)

        logger.info("return reminder run done: %s active, %s processed, %s sent",
                    summary.total_bookings, summary.processed, summary.sent)
        return summary

    def _already_sent(self, booking_id: str, interval: float, now: datetime, lookback_hours: float) -> bool:
        since = to_utc(now - timedelta(hours=lookback_hours))
        found = self.db.execute(
            select(Notification.id)
            .where(
                Notification.type == REMINDER_TYPE,
                Notification.reference_type == "booking",
                Notification.reference_id == booking_id,
                or_(Notification.interval_hours == interval, Notification.interval_hours.is_(None)),
                Notification.created_at >= since,
            )
            .limit(1)
        ).first()
        return found is not None

    def _details(self, booking: ActiveBooking) -> ReturnReminderDetails:
        return ReturnReminderDetails(
            booking_id=booking.booking_ref,
            return_time=booking.end_at.strftime("%Y-%m-%d %H:%M"),
            vehicle_model=booking.vehicle.model if booking.vehicle and booking.vehicle.model else "Vehicle",
            registration_number=booking.vehicle.registration if booking.vehicle else "",
            return_location=self.return_location,
        )

    def _dispatch(self, booking: ActiveBooking, interval: float, phone: str, now: datetime) -> ReminderOutcome:
        try:
            result = self.messenger.send_return_reminder(phone, self._details(booking))
        except ExternalDispatchError as exc:
            result = DispatchResult(success=False, error=exc.message)
        except Exception as exc:
            logger.exception("booking %s: reminder dispatch raised", booking.booking_ref)
            result = DispatchResult(success=False, error=str(exc) or exc.__class__.__name__)

        if not result.success:
            logger.warning("booking %s: %sh reminder failed: %s", booking.booking_ref, interval, result.error)
            return ReminderOutcome(booking.booking_ref, "failed", interval_hours=interval,
                                   customer_phone=phone, error=result.error or "unknown error")

        try:
            self._log_dispatch(booking, interval, phone, now)
        except Exception as exc:
            self.db.rollback()
            logger.exception("booking %s: reminder sent but not logged", booking.booking_ref)
            return ReminderOutcome(booking.booking_ref, "failed", interval_hours=interval, customer_phone=phone,
                                   error=f"sent but not logged: {exc}")
        logger.info("booking %s: %sh reminder sent to %s", booking.booking_ref, interval, phone)
        return ReminderOutcome(booking.booking_ref, "sent", interval_hours=interval, customer_phone=phone)

    def _log_dispatch(self, booking: ActiveBooking, interval: float, phone: str, now: datetime) -> None:
        self.db.add(Notification(
            id=str(uuid.uuid4()),
            type=REMINDER_TYPE,
            title="Return Reminder Sent",
            message=f"Return reminder sent for booking {booking.booking_ref}",
            reference_type="booking",
            reference_id=booking.id,
            interval_hours=interval,
            data_json=json.dumps({
                "booking_id": booking.booking_ref,
                "customer_phone": phone,
                "reminder_type": "whatsapp",
                "interval_hours": interval,
                "return_at": booking.end_at.isoformat(),
                "sent_at": now.isoformat(),
            }),
            created_at=to_utc(now),
        ))
        self.db.commit()


def run_return_reminders(db: Session, messenger, now: datetime | None = None, **scheduler_kwargs) -> ReminderRunSummary:
    """One guarded pass: skipped outright while another pass holds the lock."""
    scheduler = ReturnReminderScheduler(db, messenger, **scheduler_kwargs)
    ttl = int(scheduler.run_timeout_seconds) + 60
    owner = acquire_job_lock(db, JOB_NAME, ttl_seconds=ttl)
    if owner is None:
        logger.warning("return reminder run skipped: a previous run is still in progress")
        return ReminderRunSummary(success=False, message="A return reminder run is already in progress",
                                  timestamp=(to_local(now) if now else now_local()).isoformat(),
                                  already_running=True)
    try:
        return scheduler.run(now=now)
    except Exception:
        db.rollback()
        raise
    finally:
        release_job_lock(db, JOB_NAME, owner)
