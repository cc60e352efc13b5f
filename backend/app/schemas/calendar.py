from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.calendar_event import CalendarEventStatus


class CalendarEventBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    project_id: Optional[int] = None
    campaign_id: Optional[int] = None
    platform: Optional[str] = None
    scheduled_date: date
    status: CalendarEventStatus = CalendarEventStatus.planned
    color: Optional[str] = None


class CalendarEventCreate(CalendarEventBase):
    pass


class CalendarEventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    project_id: Optional[int] = None
    campaign_id: Optional[int] = None
    platform: Optional[str] = None
    scheduled_date: Optional[date] = None
    status: Optional[CalendarEventStatus] = None
    color: Optional[str] = None


class CalendarEvent(CalendarEventBase):
    id: int
    user_id: str
    created_at: datetime

    class Config:
        from_attributes = True
