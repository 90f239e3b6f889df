from sqlalchemy import String, Integer, DateTime, Date, Time
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, date, time, timezone
from rentdesk.db.session import Base

class BookingExtension(Base):
    __tablename__ = "booking_extensions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_id: Mapped[str] = mapped_column(String(36), index=True)
    previous_end_date: Mapped[date] = mapped_column(Date)
    previous_dropoff_time: Mapped[time] = mapped_column(Time)
    new_end_date: Mapped[date] = mapped_column(Date)
    new_dropoff_time: Mapped[time] = mapped_column(Time)
    additional_amount: Mapped[int] = mapped_column(Integer, default=0)
    reason: Mapped[str] = mapped_column(String(500), default="")
    created_by: Mapped[str] = mapped_column(String(120), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
