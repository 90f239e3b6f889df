from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest

from rentdesk.core.errors import ConfigurationError
from rentdesk.models.notification import Notification
from rentdesk.models.setting import Setting
from rentdesk.services.booking_service import create_customer
from rentdesk.services.job_lock_service import acquire_job_lock
from rentdesk.services.reminder_service import JOB_NAME, due_interval, run_return_reminders
from rentdesk.services.settings_service import set_reminder_config

IST = ZoneInfo("Asia/Kolkata")
RETURN_AT = datetime(2024, 6, 1, 10, 0, tzinfo=IST)
DAY_BEFORE = datetime(2024, 5, 31, 10, 30, tzinfo=IST)


def _run(db, messenger, now, **kwargs):
    kwargs.setdefault("send_delay_seconds", 0)
    return run_return_reminders(db, messenger, now=now, **kwargs)


@pytest.mark.parametrize("hours, expected", [
    (23.5, 24), (24.0, 24), (23.0, None), (24.01, None),
    (1.5, 2), (2.0, 2), (1.0, None), (10.0, None), (-0.5, None),
])
def test_due_interval_windows(hours, expected):
    assert due_interval(hours, [24, 2]) == expected


def test_reminder_sent_once_per_window(db, messenger, make_booking):
    b = make_booking(status="in_use")

    first = _run(db, messenger, DAY_BEFORE)
    assert first.success
    assert (first.total_bookings, first.processed, first.sent) == (1, 1, 1)
    outcome = first.results[0]
    assert (outcome.booking_id, outcome.status, outcome.interval_hours) == (b.booking_ref, "sent", 24)
    phone, details = messenger.sent[0]
    assert phone == "9876543210"
    assert details.vehicle_model == "Honda Activa"
    assert details.registration_number == "KA01AB1234"
    assert details.return_time == "2024-06-01 10:00"

    again = _run(db, messenger, DAY_BEFORE + timedelta(minutes=10))
    assert again.sent == 0
    assert again.results[0].reason == "already_sent"
    assert len(messenger.sent) == 1

    logged = db.query(Notification).filter(Notification.type == "return_reminder").all()
    assert len(logged) == 1
    assert logged[0].interval_hours == 24


def test_each_interval_fires_separately(db, messenger, make_booking):
    make_booking(status="in_use")
    _run(db, messenger, DAY_BEFORE)
    two_hours_out = _run(db, messenger, RETURN_AT - timedelta(minutes=90))
    assert two_hours_out.sent == 1
    assert two_hours_out.results[0].interval_hours == 2
    assert len(messenger.sent) == 2


def test_bookings_outside_any_window_are_left_alone(db, messenger, make_booking):
    make_booking(status="in_use")
    summary = _run(db, messenger, RETURN_AT - timedelta(hours=10))
    assert (summary.total_bookings, summary.processed, summary.sent) == (1, 0, 0)
    assert summary.results == []


def test_only_in_use_bookings_are_scanned(db, messenger, make_booking):
    make_booking(status="confirmed")
    summary = _run(db, messenger, DAY_BEFORE)
    assert summary.total_bookings == 0
    assert summary.message == "No active bookings to process"


def test_disabled_is_a_no_op(db, messenger, make_booking):
    make_booking(status="in_use")
    set_reminder_config(db, enabled=False, intervals=[24, 2])
    summary = _run(db, messenger, DAY_BEFORE)
    assert summary.success
    assert summary.processed == 0
    assert messenger.sent == []


def test_missing_phone_is_skipped(db, messenger, make_booking):
    make_booking(status="in_use", contact="")
    summary = _run(db, messenger, DAY_BEFORE)
    assert summary.results[0].status == "skipped"
    assert summary.results[0].reason == "no_phone"
    assert summary.processed == 0


def test_phone_falls_back_to_customer_record(db, messenger, make_booking):
    c = create_customer(db, "Vikram Shah", contact="91234 56789")
    make_booking(status="in_use", contact="", customer_id=c.id)
    summary = _run(db, messenger, DAY_BEFORE)
    assert summary.sent == 1
    assert messenger.sent[0][0] == "91234 56789"


def test_one_failure_does_not_stop_the_batch(db, messenger, make_booking):
    failing = make_booking(status="in_use")
    crashing = make_booking(status="in_use")
    fine = make_booking(status="in_use")
    messenger.fail_for.add(failing.booking_ref)
    messenger.raise_for.add(crashing.booking_ref)

    summary = _run(db, messenger, DAY_BEFORE)
    by_ref = {r.booking_id: r for r in summary.results}
    assert by_ref[failing.booking_ref].status == "failed"
    assert by_ref[failing.booking_ref].error == "provider rejected the message"
    assert by_ref[crashing.booking_ref].status == "failed"
    assert by_ref[fine.booking_ref].status == "sent"
    assert (summary.processed, summary.sent) == (3, 1)

    # Failed sends are retried by the next run, not remembered as sent
    messenger.fail_for.clear()
    messenger.raise_for.clear()
    retry = _run(db, messenger, DAY_BEFORE + timedelta(minutes=5))
    assert retry.sent == 2


def test_sends_are_paced(db, messenger, make_booking):
    for _ in range(3):
        make_booking(status="in_use")
    sleeps = []
    summary = _run(db, messenger, DAY_BEFORE, send_delay_seconds=1.0, sleep=sleeps.append)
    assert summary.sent == 3
    assert sleeps == [1.0, 1.0]


def test_run_stops_at_its_time_limit(db, messenger, make_booking):
    make_booking(status="in_use")
    summary = _run(db, messenger, DAY_BEFORE, run_timeout_seconds=0)
    assert summary.timed_out
    assert summary.sent == 0
    assert summary.as_dict()["timedOut"] is True


def test_overlapping_run_is_refused(db, messenger, make_booking):
    make_booking(status="in_use")
    assert acquire_job_lock(db, JOB_NAME, ttl_seconds=600) is not None
    summary = _run(db, messenger, DAY_BEFORE)
    assert summary.already_running
    assert not summary.success
    assert messenger.sent == []


def test_lock_is_released_after_each_run(db, messenger, make_booking):
    make_booking(status="in_use")
    assert not _run(db, messenger, DAY_BEFORE).already_running
    assert not _run(db, messenger, DAY_BEFORE).already_running


def test_bad_configuration_aborts_the_run(db, messenger, make_booking):
    make_booking(status="in_use")
    db.add(Setting(key="return_reminder_intervals", value_json='"soon"'))
    db.commit()
    with pytest.raises(ConfigurationError):
        _run(db, messenger, DAY_BEFORE)
    assert messenger.sent == []
    # The failed run gave its lock back
    assert acquire_job_lock(db, JOB_NAME, ttl_seconds=60) is not None


def test_reminder_at_odd_dropoff_time(db, messenger, make_booking):
    make_booking(status="in_use", dropoff=time(18, 45))
    summary = _run(db, messenger, datetime(2024, 6, 1, 17, 0, tzinfo=IST))
    assert summary.sent == 1
    assert summary.results[0].interval_hours == 2
