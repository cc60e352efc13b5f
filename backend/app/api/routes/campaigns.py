from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user_id, get_db
from app import models, schemas
from app.services.ads import aggregate_performance

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


def _get_campaign(db: Session, campaign_id: int, user_id: str) -> models.Campaign:
    campaign = (
        db.query(models.Campaign)
        .filter(models.Campaign.id == campaign_id, models.Campaign.user_id == user_id)
        .first()
    )
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return campaign


def _check_dates(start: Optional[date], end: Optional[date]) -> None:
    if start and end and end < start:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")


@router.post("/", response_model=schemas.Campaign, status_code=status.HTTP_201_CREATED)
def create_campaign(
    campaign_in: schemas.CampaignCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    _check_dates(campaign_in.start_date, campaign_in.end_date)
    campaign = models.Campaign(user_id=user_id, **campaign_in.model_dump())
    db.add(campaign)
    db.commit()
    db.refresh(campaign)
    return campaign


@router.get("/", response_model=List[schemas.Campaign])
def list_campaigns(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return (
        db.query(models.Campaign)
        .filter(models.Campaign.user_id == user_id)
        .order_by(models.Campaign.created_at.desc(), models.Campaign.id.desc())
        .all()
    )


@router.get("/{campaign_id}", response_model=schemas.Campaign)
def get_campaign(campaign_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return _get_campaign(db, campaign_id, user_id)


@router.patch("/{campaign_id}", response_model=schemas.Campaign)
def update_campaign(
    campaign_id: int,
    campaign_in: schemas.CampaignUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    campaign = _get_campaign(db, campaign_id, user_id)
    data = campaign_in.model_dump(exclude_unset=True)
    _check_dates(data.get("start_date", campaign.start_date), data.get("end_date", campaign.end_date))
    for field, value in data.items():
        setattr(campaign, field, value)
    db.commit()
    db.refresh(campaign)
    return campaign


@router.delete("/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_campaign(campaign_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    campaign = _get_campaign(db, campaign_id, user_id)
    db.delete(campaign)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{campaign_id}/performance", response_model=schemas.CampaignPerformanceResponse)
def campaign_performance(
    campaign_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    _get_campaign(db, campaign_id, user_id)
    query = db.query(models.CampaignPerformance).filter(
        models.CampaignPerformance.campaign_id == campaign_id,
        models.CampaignPerformance.user_id == user_id,
    )
    if date_from:
        query = query.filter(models.CampaignPerformance.date >= date_from)
    if date_to:
        query = query.filter(models.CampaignPerformance.date <= date_to)
    rows = query.order_by(models.CampaignPerformance.date).all()
    return {"aggregated": aggregate_performance(rows), "data": rows}
