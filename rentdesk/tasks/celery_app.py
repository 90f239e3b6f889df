from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from celery import Celery
from celery.signals import setup_logging

from rentdesk.core.config import settings
from rentdesk.core.logging import configure_logging


def _redis_url_for_celery(url: str) -> str:
    """Celery requires ssl_cert_reqs for rediss:// (e.g. Upstash TLS)."""
    if not url or not url.strip().lower().startswith("rediss://"):
        return url
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)
    if "ssl_cert_reqs" not in qs:
        qs["ssl_cert_reqs"] = ["CERT_NONE"]
        return urlunparse(parsed._replace(query=urlencode(qs, doseq=True)))
    return url


_redis_url = _redis_url_for_celery(settings.REDIS_URL)

celery = Celery(
    "rentdesk",
    broker=_redis_url,
    backend=_redis_url,
    include=["rentdesk.tasks.jobs"],
)

celery.conf.timezone = settings.TIMEZONE


# Keep celery from installing its own root handler
@setup_logging.connect
def _setup_logging(**kwargs):
    configure_logging()


# The reminder windows are one hour wide, so the poll has to be well under that
celery.conf.beat_schedule = {
    "send-return-reminders-every-5-minutes": {
        "task": "rentdesk.tasks.jobs.send_return_reminders",
        "schedule": 300.0,
    },
    "reconcile-payment-ledger-daily": {
        "task": "rentdesk.tasks.jobs.reconcile_payment_ledger",
        "schedule": 86400.0,
    },
}
