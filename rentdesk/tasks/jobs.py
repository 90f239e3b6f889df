from rentdesk.core.config import settings
from rentdesk.tasks import worker_jobs
from rentdesk.tasks.celery_app import celery


@celery.task(
    name="rentdesk.tasks.jobs.send_return_reminders",
    soft_time_limit=settings.REMINDER_RUN_TIMEOUT_SECONDS + 30,
    time_limit=settings.REMINDER_RUN_TIMEOUT_SECONDS + 60,
)
def send_return_reminders():
    return worker_jobs.send_return_reminders()


@celery.task(name="rentdesk.tasks.jobs.reconcile_payment_ledger")
def reconcile_payment_ledger():
    return worker_jobs.reconcile_payment_ledger()
