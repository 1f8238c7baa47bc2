import uuid
from datetime import datetime
from pydantic import BaseModel, Field
from recoverylab.modules.contacts.schemas import NotificationType, Channel

class BroadcastRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    type: NotificationType
    subject: str | None = None
    message: str = Field(..., min_length=1)

class NotificationOut(BaseModel):
    id: uuid.UUID
    user_id: str
    contact_id: uuid.UUID
    contact_name: str
    contact_role: str
    type: str
    channel: Channel
    status: str
    message_preview: str
    error: str | None = None
    created_at: datetime
    sent_at: datetime | None = None

    class Config:
        from_attributes = True

class BroadcastOut(BaseModel):
    sent: int
    failed: int
    results: list[NotificationOut]
