from datetime import datetime
import enum

from sqlalchemy import Column, Integer, String, DateTime, Date, ForeignKey, Text, Float, JSON, Enum
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.models.project import VersionType


class CampaignStatus(str, enum.Enum):
    draft = "draft"
    active = "active"
    paused = "paused"
    completed = "completed"
    archived = "archived"


class AdPlatform(str, enum.Enum):
    google = "google"
    meta = "meta"


class AdDeploymentStatus(str, enum.Enum):
    draft = "draft"
    pending_review = "pending_review"
    active = "active"
    paused = "paused"
    completed = "completed"
    rejected = "rejected"


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Enum(CampaignStatus), default=CampaignStatus.draft, nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    budget_usd = Column(Float, nullable=True)
    project_ids = Column(JSON, default=list)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    deployments = relationship("AdDeployment", back_populates="campaign")
    performance = relationship("CampaignPerformance", back_populates="campaign", cascade="all, delete-orphan")


class AdDeployment(Base):
    __tablename__ = "ad_deployments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="SET NULL"), nullable=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    platform = Column(Enum(AdPlatform), nullable=False)
    external_campaign_id = Column(String(128), nullable=True)
    external_ad_id = Column(String(128), nullable=True)

    creative_urls = Column(JSON, default=list)
    budget_daily_usd = Column(Float, nullable=False)
    budget_total_usd = Column(Float, nullable=True)
    # {"age_range": [18, 65], "locations": [], "interests": [], "languages": ["en"]}
    targeting = Column(JSON, nullable=True)
    version_type = Column(Enum(VersionType), nullable=True)

    status = Column(Enum(AdDeploymentStatus), default=AdDeploymentStatus.draft, nullable=False)
    status_message = Column(Text, nullable=True)
    published_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    campaign = relationship("Campaign", back_populates="deployments")


class CampaignPerformance(Base):
    __tablename__ = "campaign_performance"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=True, index=True)
    deployment_id = Column(Integer, ForeignKey("ad_deployments.id", ondelete="CASCADE"), nullable=True, index=True)

    platform = Column(String(32), nullable=False)
    date = Column(Date, nullable=False, index=True)
    version_type = Column(Enum(VersionType), nullable=True)

    impressions = Column(Integer, default=0, nullable=False)
    clicks = Column(Integer, default=0, nullable=False)
    ctr = Column(Float, default=0.0)
    conversions = Column(Integer, default=0, nullable=False)
    conversion_rate = Column(Float, default=0.0)
    spend_usd = Column(Float, default=0.0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    campaign = relationship("Campaign", back_populates="performance")
