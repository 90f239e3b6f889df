import uuid
from datetime import datetime, timedelta

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rentdesk.core.timeutils import now_utc, to_utc
from rentdesk.models.job_lock import JobLock


def acquire_job_lock(db: Session, name: str, ttl_seconds: int, now: datetime | None = None) -> str | None:
    """Take the named lease if it is free or expired. Returns the owner token, or None if held."""
    now = to_utc(now) if now else now_utc()
    owner = uuid.uuid4().hex
    until = now + timedelta(seconds=ttl_seconds)
    res = db.execute(
        update(JobLock)
        .where(JobLock.name == name, or_(JobLock.locked_until.is_(None), JobLock.locked_until <= now))
        .values(owner=owner, locked_until=until, acquired_at=now)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 1:
        db.commit()
        return owner
    db.rollback()
    if db.get(JobLock, name) is not None:
        return None
    db.add(JobLock(name=name, owner=owner, locked_until=until, acquired_at=now))
    try:
        db.commit()
    except IntegrityError:
        # Another process created the row first
        db.rollback()
        return None
    return owner


def release_job_lock(db: Session, name: str, owner: str) -> None:
    db.execute(
        update(JobLock)
        .where(JobLock.name == name, JobLock.owner == owner)
        .values(locked_until=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()
