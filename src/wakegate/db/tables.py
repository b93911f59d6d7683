"""SQLAlchemy table definitions."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from wakegate.db.base import Base


class ScheduleStateTable(Base):
    """Persisted alarm state, one row per named periodic task."""

    __tablename__ = "schedule_state"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)

    # Epoch milliseconds of the last alarm that fired; 0 means never
    last_alarm: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
