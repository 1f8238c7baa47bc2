import datetime as dt
from pydantic import BaseModel, Field

class CompletionMark(BaseModel):
    user_id: str = Field(..., min_length=1)
    event_id: str = Field(..., min_length=1)
    event_title: str | None = None
    date: dt.date
    completed: bool = True

class CompletionOut(BaseModel):
    event_id: str
    event_title: str
    date: str
    completed_at: dt.datetime
    notification_sent: bool

    class Config:
        from_attributes = True

class CompletionResult(BaseModel):
    completed: bool
    message: str
