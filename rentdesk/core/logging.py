import logging.config

from rentdesk.core.config import settings

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Install a single stdout handler for the app, worker and alembic runs."""
    global _configured
    if _configured:
        return
    level = (level or settings.LOG_LEVEL or "INFO").upper()
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "rentdesk": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn.error": {"level": level},
        },
        "root": {"handlers": ["console"], "level": "WARNING"},
    })
    _configured = True
