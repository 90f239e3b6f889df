from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from rentdesk.tasks import worker_jobs


def test_reminder_job_returns_run_summary(monkeypatch, session_factory, messenger):
    monkeypatch.setattr(worker_jobs, "SessionLocal", session_factory)
    result = worker_jobs.send_return_reminders(messenger=messenger)
    assert result["success"] is True
    assert result["message"] == "No active bookings to process"


def test_jobs_skip_when_tables_are_missing(monkeypatch, tmp_path, messenger):
    empty = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    monkeypatch.setattr(worker_jobs, "SessionLocal", sessionmaker(bind=empty))
    assert worker_jobs.send_return_reminders(messenger=messenger) == {"skipped": True, "reason": "missing_tables"}
    assert worker_jobs.reconcile_payment_ledger() == {"skipped": True, "reason": "missing_tables"}
    empty.dispose()


def test_reconcile_job(monkeypatch, session_factory, make_booking):
    make_booking(paid=200)
    monkeypatch.setattr(worker_jobs, "SessionLocal", session_factory)
    assert worker_jobs.reconcile_payment_ledger() == {"mismatches": []}
