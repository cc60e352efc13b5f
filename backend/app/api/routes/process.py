from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.dependencies import (
    get_current_user_id,
    get_db,
    get_owned_generation,
    get_owned_project,
    get_storage,
    get_video_processor,
)
from app import models, schemas
from app.services import post_production
from app.services.storage import BaseStorage

router = APIRouter(prefix="/process", tags=["post-production"])


@router.post("/stitch", response_model=schemas.StitchResponse)
def stitch(
    request: schemas.StitchRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    storage: BaseStorage = Depends(get_storage),
    processor: post_production.VideoProcessor = Depends(get_video_processor),
):
    project = get_owned_project(db, request.project_id, user_id)
    return post_production.stitch_project(
        db, project, storage, processor, language=request.language, platform=request.platform
    )


@router.post("/export", response_model=schemas.ExportResponse)
def export(
    request: schemas.ExportRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    project = get_owned_project(db, request.project_id, user_id)
    return post_production.build_export_packages(
        db,
        project,
        request.platforms,
        include_caption=request.include_caption,
        include_watermark=request.include_watermark,
        resolution=request.resolution,
    )


@router.post("/watermark", response_model=schemas.Generation)
def watermark(
    request: schemas.WatermarkRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    storage: BaseStorage = Depends(get_storage),
    processor: post_production.VideoProcessor = Depends(get_video_processor),
):
    project = get_owned_project(db, request.project_id, user_id)
    generation = get_owned_generation(db, request.generation_id, user_id)
    if generation.project_id != project.id:
        raise HTTPException(status_code=404, detail="Generation not found")
    return post_production.apply_watermark(
        db, project, generation, storage, processor, position=request.position, opacity=request.opacity
    )


@router.post("/caption-embed", response_model=schemas.Caption)
def caption_embed(
    request: schemas.CaptionEmbedRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    caption = (
        db.query(models.Caption)
        .join(models.Generation)
        .join(models.Project)
        .filter(models.Caption.id == request.caption_id, models.Project.user_id == user_id)
        .first()
    )
    if not caption:
        raise HTTPException(status_code=404, detail="Caption not found")
    return post_production.embed_caption(db, caption)
