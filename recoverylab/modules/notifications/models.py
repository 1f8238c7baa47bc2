import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, TIMESTAMP
from recoverylab.core.base import Base, TimestampedMixin

class NotificationRecord(Base, TimestampedMixin):
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    # no FK: ledger rows outlive the contact they were sent to
    contact_id: Mapped[uuid.UUID] = mapped_column()
    contact_name: Mapped[str] = mapped_column(String(200))
    contact_role: Mapped[str] = mapped_column(String(32))
    type: Mapped[str] = mapped_column(String(32))
    channel: Mapped[str] = mapped_column(String(8))  # sms | email
    status: Mapped[str] = mapped_column(String(16), default="pending")  # pending | sent | failed
    message_preview: Mapped[str] = mapped_column(String(160))
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
