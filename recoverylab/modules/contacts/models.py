from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, TIMESTAMP, JSON
from recoverylab.core.base import Base, TimestampedMixin, utcnow

class Contact(Base, TimestampedMixin):
    user_id: Mapped[str] = mapped_column(String(128), index=True)  # owning patient
    name: Mapped[str] = mapped_column(String(200))
    relationship: Mapped[str] = mapped_column(String(120))
    role: Mapped[str] = mapped_column(String(32))  # family | doctor | physical_therapist | insurance_provider | caregiver | other
    organization: Mapped[str | None] = mapped_column(String(200), nullable=True)
    license_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    notifications: Mapped[dict] = mapped_column(JSON)  # notification type -> opt-in
    channels: Mapped[dict] = mapped_column(JSON)       # {"sms": bool, "email": bool}
    preferences: Mapped[dict] = mapped_column(JSON)    # frequency, data_access_level
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow)
