from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user_id, get_db, get_owned_project
from app import models, schemas
from app.services import ads as ads_service

router = APIRouter(prefix="/ads", tags=["ads"])


def _get_deployment(db: Session, deployment_id: int, user_id: str) -> models.AdDeployment:
    deployment = (
        db.query(models.AdDeployment)
        .filter(models.AdDeployment.id == deployment_id, models.AdDeployment.user_id == user_id)
        .first()
    )
    if not deployment:
        raise HTTPException(status_code=404, detail="Deployment not found")
    return deployment


@router.post("/publish", response_model=schemas.PublishAdResponse, status_code=status.HTTP_201_CREATED)
def publish(
    request: schemas.PublishAdRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    get_owned_project(db, request.project_id, user_id)
    if request.campaign_id is not None:
        campaign = (
            db.query(models.Campaign.id)
            .filter(models.Campaign.id == request.campaign_id, models.Campaign.user_id == user_id)
            .first()
        )
        if not campaign:
            raise HTTPException(status_code=404, detail="Campaign not found")
    if request.start_date and request.end_date and request.end_date < request.start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")

    deployment, result = ads_service.publish_to_ads(db, user_id, request)
    return {"deployment": deployment, "publish_result": result}


@router.get("/{deployment_id}/status", response_model=schemas.AdDeployment)
def deployment_status(deployment_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return _get_deployment(db, deployment_id, user_id)


@router.post("/{deployment_id}/pause", response_model=schemas.AdDeployment)
def pause(deployment_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    deployment = _get_deployment(db, deployment_id, user_id)
    if deployment.status not in (models.AdDeploymentStatus.active, models.AdDeploymentStatus.pending_review):
        raise HTTPException(status_code=400, detail=f"Cannot pause a {deployment.status.value} deployment")
    return ads_service.pause_deployment(db, deployment)


@router.post("/sync-performance", response_model=list[schemas.PerformanceRow])
def sync_performance(
    request: schemas.SyncPerformanceRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    if request.date_to < request.date_from:
        raise HTTPException(status_code=400, detail="date_to must not be before date_from")
    if (request.date_to - request.date_from).days > 90:
        raise HTTPException(status_code=400, detail="Date range is limited to 90 days")
    deployment = _get_deployment(db, request.deployment_id, user_id)
    return ads_service.sync_performance(db, deployment, request.date_from, request.date_to)
