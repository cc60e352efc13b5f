from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, UniqueConstraint

from app.db.base import Base


class ApiKey(Base):
    __tablename__ = "api_keys"
    __table_args__ = (UniqueConstraint("user_id", "platform", name="uq_api_key_user_platform"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)

    platform = Column(String(32), nullable=False)  # google_ads | meta_ads | github
    # Fernet token of the JSON key bundle
    keys_encrypted = Column(Text, nullable=False)
    is_valid = Column(Boolean, default=True)
    last_validated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
