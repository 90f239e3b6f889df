from sqlalchemy import String, Integer, DateTime, Date, Time, Text, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, date, time, timezone
from rentdesk.db.session import Base

class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_ref: Mapped[str] = mapped_column(String(20), unique=True, index=True)

    customer_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    customer_name: Mapped[str] = mapped_column(String(200), default="")
    customer_contact: Mapped[str] = mapped_column(String(30), default="")
    vehicle_details: Mapped[str] = mapped_column(Text, default="{}")  # {"model": ..., "registration": ...}

    start_date: Mapped[date] = mapped_column(Date)
    pickup_time: Mapped[time] = mapped_column(Time)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    dropoff_time: Mapped[time | None] = mapped_column(Time, nullable=True)

    # Whole currency units
    booking_amount: Mapped[int] = mapped_column(Integer, default=0)
    security_deposit_amount: Mapped[int] = mapped_column(Integer, default=0)
    damage_charges: Mapped[int] = mapped_column(Integer, default=0)
    late_fee: Mapped[int] = mapped_column(Integer, default=0)
    extension_fee: Mapped[int] = mapped_column(Integer, default=0)

    total_amount: Mapped[int] = mapped_column(Integer, default=0)  # cached total payable
    paid_amount: Mapped[int] = mapped_column(Integer, default=0)   # cached sum of completed payments
    payment_status: Mapped[str] = mapped_column(String(20), default="pending")  # pending, partial, full
    refund_amount: Mapped[int] = mapped_column(Integer, default=0)  # deposit to return, set at completion
    security_deposit_refunded: Mapped[bool] = mapped_column(Boolean, default=False)

    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)  # pending, confirmed, in_use, completed, cancelled

    damage_description: Mapped[str] = mapped_column(Text, default="")
    vehicle_remarks: Mapped[str] = mapped_column(Text, default="")
    returned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_by: Mapped[str] = mapped_column(String(120), default="")
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[str] = mapped_column(String(500), default="")

    created_by: Mapped[str] = mapped_column(String(120), default="")
    updated_by: Mapped[str] = mapped_column(String(120), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    # Every UPDATE is issued as "... WHERE id = ? AND version_id = <version read>"
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}
