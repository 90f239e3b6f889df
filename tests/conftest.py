import os

# Settings are read at import time; the module-level engine is never used by tests
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TIMEZONE", "Asia/Kolkata")
os.environ.setdefault("WHATSAPP_API_KEY", "")

from datetime import date, time  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from rentdesk.api.deps import get_messenger  # noqa: E402
from rentdesk.db.base import Base  # noqa: E402
from rentdesk.db.session import get_db  # noqa: E402
from rentdesk.main import app  # noqa: E402
from rentdesk.services.booking_service import create_booking  # noqa: E402
from rentdesk.services.whatsapp_client import DispatchResult  # noqa: E402


class RecordingMessenger:
    """Stands in for the WhatsApp client; remembers every reminder it was asked to send."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()
        self.raise_for = set()

    def send_return_reminder(self, phone, details):
        if details.booking_id in self.raise_for:
            raise RuntimeError("provider exploded")
        if details.booking_id in self.fail_for:
            return DispatchResult(success=False, error="provider rejected the message")
        self.sent.append((phone, details))
        return DispatchResult(success=True)


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'rentdesk.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def messenger():
    return RecordingMessenger()


@pytest.fixture
def client(session_factory, messenger):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_messenger] = lambda: messenger
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_booking(db):
    """Create a booking through intake, then force it into ``status`` for the test."""

    def _make(status="confirmed", booking_amount=2000, deposit=1000, paid=0,
              start=date(2024, 5, 30), pickup=time(10, 0), end=date(2024, 6, 1), dropoff=time(10, 0),
              contact="9876543210", customer_id=None, vehicle=None):
        b = create_booking(
            db,
            customer_name="Asha Rao",
            customer_contact=contact,
            customer_id=customer_id,
            vehicle=vehicle or {"model": "Honda Activa", "registration": "KA01AB1234"},
            start_date=start,
            pickup_time=pickup,
            end_date=end,
            dropoff_time=dropoff,
            booking_amount=booking_amount,
            security_deposit_amount=deposit,
            status="pending" if status == "pending" else "confirmed",
            initial_payment=paid,
            created_by="desk",
        )
        if status not in ("pending", "confirmed"):
            b.status = status
            db.commit()
        return b

    return _make
