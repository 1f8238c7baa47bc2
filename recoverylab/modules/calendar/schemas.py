from datetime import date, datetime
from pydantic import BaseModel, Field
from recoverylab.core.config import settings

class ExerciseSchedule(BaseModel):
    name: str = Field(..., min_length=1)
    instructions: list[str] = []
    sets_reps: str = ""
    frequency: str
    start_time: str | None = Field(default=None, pattern=r"^\d{1,2}:\d{2}$")
    duration_minutes: int = Field(default=30, ge=1, le=24 * 60)

class ExpandRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    session_id: str = Field(..., min_length=1)
    exercises: list[ExerciseSchedule]
    analysis_date: date | datetime
    timezone: str = settings.DEFAULT_TIMEZONE
    # range is enforced by the service so callers get a ValidationError either way
    weeks: int = 4
    plan_label: str | None = None
    gait_type: str | None = None

class CalendarEventOut(BaseModel):
    exercise: str
    summary: str
    description: str
    start: datetime
    end: datetime
    timezone: str
    event_id: str
    html_link: str

class ExpandOut(BaseModel):
    count: int
    events: list[CalendarEventOut]

class TokenStore(BaseModel):
    user_id: str = Field(..., min_length=1)
    access_token: str = Field(..., min_length=1)
    expires_in: int = Field(default=3600, gt=0)

class TokenStatus(BaseModel):
    connected: bool
    expired: bool | None = None
    expires_at: datetime | None = None
    scope: str | None = None

class UnscheduleOut(BaseModel):
    deleted: int
    failed: int

class LoggedEventOut(BaseModel):
    session_id: str
    event_id: str
    summary: str = ""
    html_link: str = ""
    start: datetime | None = None
    end: datetime | None = None
