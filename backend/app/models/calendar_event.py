from datetime import datetime
import enum

from sqlalchemy import Column, Integer, String, DateTime, Date, ForeignKey, Text, Enum

from app.db.base import Base


class CalendarEventStatus(str, enum.Enum):
    planned = "planned"
    ready = "ready"
    published = "published"


class CalendarEvent(Base):
    __tablename__ = "calendar_events"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="SET NULL"), nullable=True)
    platform = Column(String(64), nullable=True)
    scheduled_date = Column(Date, nullable=False, index=True)
    status = Column(Enum(CalendarEventStatus), default=CalendarEventStatus.planned, nullable=False)
    color = Column(String(16), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
