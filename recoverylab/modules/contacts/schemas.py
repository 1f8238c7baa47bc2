import uuid
from datetime import datetime
from typing import Literal, get_args
from pydantic import BaseModel, EmailStr, Field

Role = Literal["family", "doctor", "physical_therapist", "insurance_provider", "caregiver", "other"]
NotificationType = Literal[
    "analysis_update", "weekly_summary", "doctor_flag", "progress_milestone",
    "exercise_completion", "medical_report", "insurance_update", "appointment_reminder",
]
Channel = Literal["sms", "email"]
Frequency = Literal["realtime", "daily_digest", "weekly_digest"]
DataAccessLevel = Literal["basic", "detailed", "full_medical"]

NOTIFICATION_TYPES: tuple[str, ...] = get_args(NotificationType)
DEFAULT_SUBSCRIPTIONS = {"analysis_update", "weekly_summary", "doctor_flag"}

class PreferencesIn(BaseModel):
    frequency: Frequency | None = None
    data_access_level: DataAccessLevel | None = None

class Preferences(BaseModel):
    frequency: Frequency = "realtime"
    data_access_level: DataAccessLevel = "basic"

class ContactCreate(BaseModel):
    # required-ness of name/relationship/role is checked by the service
    name: str | None = Field(default=None, max_length=200)
    relationship: str | None = Field(default=None, max_length=120)
    role: Role | None = None
    organization: str | None = None
    license_number: str | None = None
    phone: str | None = Field(default=None, max_length=32)
    email: EmailStr | None = None
    notifications: dict[NotificationType, bool] | None = None
    channels: dict[Channel, bool] | None = None
    preferences: PreferencesIn | None = None

class ContactUpdate(BaseModel):
    # unknown keys (id, user_id, created_at, ...) are ignored by pydantic
    name: str | None = Field(default=None, max_length=200)
    relationship: str | None = Field(default=None, max_length=120)
    role: Role | None = None
    organization: str | None = None
    license_number: str | None = None
    phone: str | None = Field(default=None, max_length=32)
    email: EmailStr | None = None
    notifications: dict[NotificationType, bool] | None = None
    channels: dict[Channel, bool] | None = None
    preferences: PreferencesIn | None = None

class ContactOut(BaseModel):
    id: uuid.UUID
    user_id: str
    name: str
    relationship: str
    role: Role
    organization: str | None
    license_number: str | None
    phone: str | None
    email: str | None
    notifications: dict[str, bool]
    channels: dict[str, bool]
    preferences: Preferences
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class ContactRegister(ContactCreate):
    user_id: str | None = None
