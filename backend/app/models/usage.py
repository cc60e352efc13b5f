from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Float, UniqueConstraint

from app.db.base import Base


class UsageLog(Base):
    __tablename__ = "usage_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    generation_id = Column(Integer, ForeignKey("generations.id", ondelete="SET NULL"), nullable=True)

    api_service = Column(String(32), nullable=False)  # gemini | veo | imagen | tts
    model = Column(String(128), nullable=False)
    operation = Column(String(64), nullable=False)

    input_tokens = Column(Integer, nullable=True)
    output_tokens = Column(Integer, nullable=True)
    duration_seconds = Column(Float, nullable=True)
    estimated_cost_usd = Column(Float, default=0.0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class RateLimitBucket(Base):
    __tablename__ = "rate_limit_buckets"
    __table_args__ = (UniqueConstraint("user_id", "category", name="uq_rate_limit_user_category"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False)
    category = Column(String(32), nullable=False)
    tokens = Column(Float, nullable=False)
    last_refill = Column(DateTime, default=datetime.utcnow, nullable=False)
