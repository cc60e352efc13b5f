from datetime import date, datetime
from typing import Optional, List, Any, Dict

from pydantic import BaseModel, Field, model_validator

from app.models.campaign import CampaignStatus, AdPlatform, AdDeploymentStatus
from app.models.project import VersionType


class CampaignBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    status: CampaignStatus = CampaignStatus.draft
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget_usd: Optional[float] = Field(None, ge=0)
    project_ids: List[int] = []


class CampaignCreate(CampaignBase):
    pass


class CampaignUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[CampaignStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget_usd: Optional[float] = Field(None, ge=0)
    project_ids: Optional[List[int]] = None


class Campaign(CampaignBase):
    id: int
    user_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class PerformanceRow(BaseModel):
    id: int
    campaign_id: Optional[int] = None
    deployment_id: Optional[int] = None
    platform: str
    date: date
    version_type: Optional[VersionType] = None
    impressions: int
    clicks: int
    ctr: float
    conversions: int
    conversion_rate: float
    spend_usd: float

    class Config:
        from_attributes = True


class PerformanceAggregate(BaseModel):
    total_impressions: int = 0
    total_clicks: int = 0
    total_conversions: int = 0
    total_spend_usd: float = 0.0
    avg_ctr: float = 0.0
    avg_conversion_rate: float = 0.0


class CampaignPerformanceResponse(BaseModel):
    aggregated: PerformanceAggregate
    data: List[PerformanceRow]


class Targeting(BaseModel):
    age_range: List[int] = Field([18, 65], min_length=2, max_length=2)
    locations: List[str] = []
    interests: List[str] = []
    languages: List[str] = ["en"]

    @model_validator(mode="after")
    def check_age_range(self):
        low, high = self.age_range
        if not (13 <= low <= high <= 65):
            raise ValueError("age_range must be within 13-65 and ascending")
        return self


class PublishAdRequest(BaseModel):
    platform: AdPlatform
    campaign_name: str = Field(..., min_length=1, max_length=200)
    project_id: int
    campaign_id: Optional[int] = None
    budget_daily_usd: float = Field(..., ge=1, le=10000)
    budget_total_usd: Optional[float] = Field(None, ge=1, le=1000000)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    targeting: Optional[Targeting] = None
    creative_urls: List[str] = Field(..., min_length=1)
    version_type: Optional[VersionType] = None


class PublishResult(BaseModel):
    success: bool
    platform: AdPlatform
    external_campaign_id: Optional[str] = None
    external_ad_id: Optional[str] = None
    status: AdDeploymentStatus
    message: str


class AdDeployment(BaseModel):
    id: int
    campaign_id: Optional[int] = None
    project_id: int
    platform: AdPlatform
    external_campaign_id: Optional[str] = None
    external_ad_id: Optional[str] = None
    creative_urls: List[str] = []
    budget_daily_usd: float
    budget_total_usd: Optional[float] = None
    targeting: Optional[Dict[str, Any]] = None
    version_type: Optional[VersionType] = None
    status: AdDeploymentStatus
    status_message: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PublishAdResponse(BaseModel):
    deployment: AdDeployment
    publish_result: PublishResult


class SyncPerformanceRequest(BaseModel):
    deployment_id: int
    date_from: date
    date_to: date
