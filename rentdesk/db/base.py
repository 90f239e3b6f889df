"""Base metadata with every model registered (alembic autogenerate, test schema)."""
from rentdesk.db.session import Base  # noqa: F401

from rentdesk.models.audit_log import AuditLog  # noqa: F401
from rentdesk.models.booking import Booking  # noqa: F401
from rentdesk.models.customer import Customer  # noqa: F401
from rentdesk.models.extension import BookingExtension  # noqa: F401
from rentdesk.models.job_lock import JobLock  # noqa: F401
from rentdesk.models.notification import Notification  # noqa: F401
from rentdesk.models.payment import Payment  # noqa: F401
from rentdesk.models.refund import Refund  # noqa: F401
from rentdesk.models.setting import Setting  # noqa: F401
from rentdesk.models.vehicle_damage import VehicleDamage  # noqa: F401
