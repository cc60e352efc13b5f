from datetime import datetime
import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, Enum

from app.db.base import Base


class NotificationType(str, enum.Enum):
    generation_complete = "generation_complete"
    generation_failed = "generation_failed"
    budget_alert = "budget_alert"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)

    type = Column(Enum(NotificationType), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    reference_id = Column(String(64), nullable=True)
    reference_type = Column(String(32), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
