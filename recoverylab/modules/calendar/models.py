from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, TIMESTAMP
from recoverylab.core.base import Base, utcnow

class CalendarToken(Base):
    __tablename__ = "calendartoken"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    access_token: Mapped[str] = mapped_column(Text)  # Fernet ciphertext
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    scope: Mapped[str] = mapped_column(String(200))
    stored_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)

# Presence means the session's exercises are already on the calendar
class ScheduleGuard(Base):
    __tablename__ = "scheduleguard"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    session_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    scheduled_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)
    event_count: Mapped[int] = mapped_column(Integer, default=0)
