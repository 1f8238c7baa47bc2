from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean, TIMESTAMP, UniqueConstraint
from recoverylab.core.base import Base, TimestampedMixin, utcnow

class ExerciseCompletion(Base, TimestampedMixin):
    __table_args__ = (UniqueConstraint("user_id", "event_id", name="uq_completion_user_event"),)

    user_id: Mapped[str] = mapped_column(String(128), index=True)
    event_id: Mapped[str] = mapped_column(String(256))
    event_title: Mapped[str] = mapped_column(String(300), default="Exercise")
    date: Mapped[str] = mapped_column(String(10))  # YYYY-MM-DD, patient-local
    completed_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)
    notification_sent: Mapped[bool] = mapped_column(Boolean, default=False)
