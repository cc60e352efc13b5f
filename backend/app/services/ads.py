"""
Ad platform publishing.

Both publishers are stubs: they return simulated ids, statuses and metrics.
When complete credentials are supplied they only log that a real API call
would be made.
"""
import logging
import random
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app import models
from app.schemas.campaign import PublishAdRequest
from app.services.encryption import get_platform_keys, missing_fields

logger = logging.getLogger(__name__)

KEY_PLATFORMS = {
    models.AdPlatform.google: "google_ads",
    models.AdPlatform.meta: "meta_ads",
}


class StubAdPublisher:
    platform: models.AdPlatform
    id_prefix: str
    label: str

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def _has_real_keys(self, keys: Optional[Dict]) -> bool:
        return bool(keys) and not missing_fields(KEY_PLATFORMS[self.platform], keys)

    def _stub_id(self, kind: str) -> str:
        return f"{self.id_prefix}_{kind}_{self.rng.randrange(1_000_000_000)}"

    def create_campaign(self, config: Dict, keys: Optional[Dict] = None) -> Dict:
        if self._has_real_keys(keys):
            logger.info("[%s] Real keys present for %r, real API call skipped (stub)", self.label, config["campaign_name"])
        else:
            logger.info("[%s] No API keys, simulating %r", self.label, config["campaign_name"])
        return {
            "success": True,
            "platform": self.platform,
            "external_campaign_id": self._stub_id("camp"),
            "external_ad_id": self._stub_id("ad"),
            "status": models.AdDeploymentStatus.pending_review,
            "message": f'{self.label} campaign "{config["campaign_name"]}" created successfully (stub). '
                       "Review typically takes 1-2 business days.",
        }

    def pause_campaign(self, external_campaign_id: str, keys: Optional[Dict] = None) -> Dict:
        if self._has_real_keys(keys):
            logger.info("[%s] Would pause %s (stub)", self.label, external_campaign_id)
        return {
            "success": True,
            "platform": self.platform,
            "external_campaign_id": external_campaign_id,
            "external_ad_id": None,
            "status": models.AdDeploymentStatus.paused,
            "message": f"{self.label} campaign {external_campaign_id} paused successfully (stub).",
        }

    def get_metrics(self, external_campaign_id: str, date_from: date, date_to: date,
                    keys: Optional[Dict] = None) -> List[Dict]:
        """One row of plausible numbers per day, both ends inclusive."""
        if self._has_real_keys(keys):
            logger.info("[%s] Would fetch metrics for %s (stub)", self.label, external_campaign_id)
        rows = []
        day = date_from
        while day <= date_to:
            impressions = int(800 + self.rng.random() * 4200)
            clicks = int(impressions * (0.015 + self.rng.random() * 0.045))
            conversions = int(clicks * (0.02 + self.rng.random() * 0.08))
            rows.append({
                "date": day,
                "impressions": impressions,
                "clicks": clicks,
                "ctr": round(clicks / impressions, 4),
                "conversions": conversions,
                "conversion_rate": round(conversions / clicks, 4) if clicks else 0.0,
                "spend_usd": round(5 + self.rng.random() * 25, 2),
            })
            day += timedelta(days=1)
        return rows


class GoogleAdsPublisher(StubAdPublisher):
    platform = models.AdPlatform.google
    id_prefix = "gads"
    label = "GoogleAds"


class MetaAdsPublisher(StubAdPublisher):
    platform = models.AdPlatform.meta
    id_prefix = "meta"
    label = "MetaAds"


def get_publisher(platform: models.AdPlatform, rng: Optional[random.Random] = None) -> StubAdPublisher:
    if platform == models.AdPlatform.google:
        return GoogleAdsPublisher(rng)
    if platform == models.AdPlatform.meta:
        return MetaAdsPublisher(rng)
    raise ValueError(f"Unsupported ad platform: {platform}")


def _user_keys(db: Session, user_id: str, platform: models.AdPlatform) -> Optional[Dict]:
    return get_platform_keys(db, user_id, KEY_PLATFORMS[platform])


def publish_to_ads(
    db: Session,
    user_id: str,
    request: PublishAdRequest,
    publisher: Optional[StubAdPublisher] = None,
) -> Tuple[models.AdDeployment, Dict]:
    publisher = publisher or get_publisher(request.platform)
    start = request.start_date or date.today()
    total = request.budget_total_usd or request.budget_daily_usd * 30
    targeting = request.targeting.model_dump() if request.targeting else {
        "age_range": [18, 65],
        "locations": [],
        "interests": [],
        "languages": ["en"],
    }
    config = {
        "platform": request.platform,
        "campaign_name": request.campaign_name,
        "budget_daily_usd": request.budget_daily_usd,
        "budget_total_usd": total,
        "start_date": start.isoformat(),
        "end_date": request.end_date.isoformat() if request.end_date else None,
        "targeting": targeting,
        "creative_urls": request.creative_urls,
        "project_id": request.project_id,
    }

    result = publisher.create_campaign(config, _user_keys(db, user_id, request.platform))

    deployment = models.AdDeployment(
        user_id=user_id,
        campaign_id=request.campaign_id,
        project_id=request.project_id,
        platform=request.platform,
        external_campaign_id=result["external_campaign_id"],
        external_ad_id=result["external_ad_id"],
        creative_urls=request.creative_urls,
        budget_daily_usd=request.budget_daily_usd,
        budget_total_usd=total,
        targeting=targeting,
        version_type=request.version_type,
        status=result["status"] if result["success"] else models.AdDeploymentStatus.rejected,
        status_message=result["message"],
        published_at=datetime.utcnow() if result["success"] else None,
    )
    db.add(deployment)
    db.commit()
    db.refresh(deployment)
    logger.info("Deployment %s published to %s: %s", deployment.id, request.platform.value, result["external_campaign_id"])
    return deployment, result


def pause_deployment(
    db: Session,
    deployment: models.AdDeployment,
    publisher: Optional[StubAdPublisher] = None,
) -> models.AdDeployment:
    publisher = publisher or get_publisher(deployment.platform)
    result = publisher.pause_campaign(
        deployment.external_campaign_id,
        _user_keys(db, deployment.user_id, deployment.platform),
    )
    deployment.status = result["status"]
    deployment.status_message = result["message"]
    db.commit()
    db.refresh(deployment)
    return deployment


def sync_performance(
    db: Session,
    deployment: models.AdDeployment,
    date_from: date,
    date_to: date,
    publisher: Optional[StubAdPublisher] = None,
) -> List[models.CampaignPerformance]:
    """Pull metrics for the range and replace any rows already stored for those days."""
    publisher = publisher or get_publisher(deployment.platform)
    metrics = publisher.get_metrics(
        deployment.external_campaign_id,
        date_from,
        date_to,
        _user_keys(db, deployment.user_id, deployment.platform),
    )

    db.query(models.CampaignPerformance).filter(
        models.CampaignPerformance.deployment_id == deployment.id,
        models.CampaignPerformance.date >= date_from,
        models.CampaignPerformance.date <= date_to,
    ).delete(synchronize_session=False)

    rows = []
    for m in metrics:
        row = models.CampaignPerformance(
            user_id=deployment.user_id,
            campaign_id=deployment.campaign_id,
            deployment_id=deployment.id,
            platform=deployment.platform.value,
            version_type=deployment.version_type,
            **m,
        )
        db.add(row)
        rows.append(row)
    db.commit()
    return rows


def aggregate_performance(rows: List[models.CampaignPerformance]) -> Dict:
    impressions = sum(r.impressions or 0 for r in rows)
    clicks = sum(r.clicks or 0 for r in rows)
    conversions = sum(r.conversions or 0 for r in rows)
    spend = sum(r.spend_usd or 0.0 for r in rows)
    return {
        "total_impressions": impressions,
        "total_clicks": clicks,
        "total_conversions": conversions,
        "total_spend_usd": round(spend, 2),
        "avg_ctr": round(clicks / impressions * 100, 2) if impressions else 0.0,
        "avg_conversion_rate": round(conversions / clicks * 100, 2) if clicks else 0.0,
    }
