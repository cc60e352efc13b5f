import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.dependencies import (
    ai_guard,
    get_current_user_id,
    get_db,
    get_image_service,
    get_owned_generation,
    get_owned_project,
    get_owned_scene,
    get_scraper,
    get_storage,
    get_tts_service,
    get_video_service,
)
from app import models, schemas
from app.core.config import settings
from app.core.queue import generation_queue
from app.services import generation as generation_service
from app.services.context import ContextScraper
from app.services.generation_status import poll_generation
from app.services.image import ImagenService
from app.services.mockup import DEFAULT_BACKGROUND, canvas_dimensions, composite_phone_mockup
from app.services.storage import BaseStorage
from app.services.video.base import BaseVideoService
from app.services.voice import GeminiTTSService

router = APIRouter(prefix="/generate", tags=["generate"])


def _enqueue_polling(generation: models.Generation) -> None:
    if settings.BACKGROUND_POLLING and generation.status == models.GenerationStatus.processing:
        generation_queue.enqueue("app.workers.tasks.poll_generation_task", generation.id)


@router.post(
    "/video",
    response_model=schemas.Generation,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(ai_guard("ai-media"))],
)
def generate_video(
    request: schemas.VideoGenerateRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    video_service: BaseVideoService = Depends(get_video_service),
):
    project = get_owned_project(db, request.project_id, user_id)
    scene = get_owned_scene(db, request.scene_id, user_id)
    if scene.project_id != project.id:
        raise HTTPException(status_code=404, detail="Scene not found")

    generation = generation_service.start_video_generation(
        db,
        project,
        scene,
        video_service,
        language=request.language,
        platform=request.platform,
        aspect_ratio=request.aspect_ratio,
        use_fast_model=request.use_fast_model,
    )
    _enqueue_polling(generation)
    return generation


@router.post("/batch", response_model=schemas.BatchGenerateResponse, dependencies=[Depends(ai_guard("ai-media"))])
def generate_batch(
    request: schemas.BatchGenerateRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    video_service: BaseVideoService = Depends(get_video_service),
):
    project = get_owned_project(db, request.project_id, user_id)
    scenes = list(project.scenes)
    if request.scene_ids:
        wanted = set(request.scene_ids)
        scenes = [s for s in scenes if s.id in wanted]
    if not scenes:
        raise HTTPException(status_code=400, detail="No scenes to generate")

    generations, failed = generation_service.submit_batch(
        db,
        project,
        scenes,
        video_service,
        languages=request.languages,
        platforms=request.platforms,
        use_fast_model=request.use_fast_model,
    )
    for generation in generations:
        _enqueue_polling(generation)
    return {
        "total": len(generations),
        "submitted": len(generations) - failed,
        "failed": failed,
        "generations": generations,
    }


@router.get("/video/status", response_model=schemas.GenerationStatusResponse)
def video_status(
    generation_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    video_service: BaseVideoService = Depends(get_video_service),
    storage: BaseStorage = Depends(get_storage),
):
    generation = get_owned_generation(db, generation_id, user_id)
    result = poll_generation(db, generation, video_service, storage)
    generation = result.generation
    return {
        "generation_id": generation.id,
        "status": generation.status,
        "output_url": generation.output_url,
        "thumbnail_url": generation.thumbnail_url,
        "error_message": generation.error_message,
        "retry_count": generation.retry_count,
        "max_retries": settings.GENERATION_MAX_RETRIES,
        "warning": result.warning,
    }


@router.post("/video/retry", response_model=schemas.Generation, dependencies=[Depends(ai_guard("ai-media"))])
def retry_video(
    request: schemas.RetryRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    video_service: BaseVideoService = Depends(get_video_service),
):
    generation = get_owned_generation(db, request.generation_id, user_id)
    generation = generation_service.retry_video_generation(db, generation, video_service)
    _enqueue_polling(generation)
    return generation


@router.post(
    "/video/extend",
    response_model=schemas.Generation,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(ai_guard("ai-media"))],
)
def extend_video(
    request: schemas.ExtendRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    video_service: BaseVideoService = Depends(get_video_service),
):
    source = get_owned_generation(db, request.source_generation_id, user_id)
    generation = generation_service.extend_video_generation(
        db, source, request.prompt, video_service, duration_seconds=request.duration_seconds
    )
    _enqueue_polling(generation)
    return generation


@router.get("/project/{project_id}", response_model=List[schemas.Generation])
def list_generations(
    project_id: int,
    type: Optional[models.GenerationType] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    get_owned_project(db, project_id, user_id)
    query = db.query(models.Generation).filter(models.Generation.project_id == project_id)
    if type is not None:
        query = query.filter(models.Generation.type == type)
    return query.order_by(models.Generation.created_at.desc(), models.Generation.id.desc()).all()


@router.post(
    "/image",
    response_model=schemas.Generation,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(ai_guard("ai-media"))],
)
def generate_image(
    request: schemas.ImageGenerateRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    image_service: ImagenService = Depends(get_image_service),
    storage: BaseStorage = Depends(get_storage),
):
    project = get_owned_project(db, request.project_id, user_id)
    return generation_service.generate_image(
        db,
        project,
        request.prompt,
        image_service,
        storage,
        aspect_ratio=request.aspect_ratio,
        use_fast_model=request.use_fast_model,
        purpose=request.purpose,
    )


@router.post(
    "/voiceover",
    response_model=schemas.Generation,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(ai_guard("ai-media"))],
)
def generate_voiceover(
    request: schemas.VoiceoverRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    tts_service: GeminiTTSService = Depends(get_tts_service),
    storage: BaseStorage = Depends(get_storage),
):
    project = get_owned_project(db, request.project_id, user_id)
    scene = None
    if request.scene_id is not None:
        scene = get_owned_scene(db, request.scene_id, user_id)
        if scene.project_id != project.id:
            raise HTTPException(status_code=404, detail="Scene not found")
    return generation_service.generate_voiceover(
        db,
        project,
        request.text,
        request.language,
        tts_service,
        storage,
        scene=scene,
        voice_name=request.voice_name,
    )


def _read_screenshot(url: str, storage: BaseStorage, scraper: ContextScraper) -> bytes:
    if storage.owns(url):
        return storage.download(url)
    resp = scraper.fetch(url, accept="image/*")
    if not resp.ok:
        raise HTTPException(status_code=400, detail="Failed to fetch screenshot image")
    return resp.content


@router.post("/mockup", response_model=schemas.MockupResponse)
def generate_mockup(
    request: schemas.MockupRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    storage: BaseStorage = Depends(get_storage),
    scraper: ContextScraper = Depends(get_scraper),
):
    scene = get_owned_scene(db, request.scene_id, user_id) if request.scene_id is not None else None

    screenshot = _read_screenshot(request.screenshot_url, storage, scraper)
    width, height = canvas_dimensions(request.aspect_ratio)
    png = composite_phone_mockup(
        screenshot,
        request.template_id,
        width,
        height,
        background_color=request.background_color or DEFAULT_BACKGROUND,
    )
    mockup_url = storage.upload_bytes(f"mockups/{user_id}/{uuid.uuid4().hex}.png", png, "image/png")

    if scene is not None:
        scene.phone_mockup_config = {
            "template_id": request.template_id,
            "screenshot_url": request.screenshot_url,
            "background_color": request.background_color,
        }
        scene.mockup_image_url = mockup_url
        db.commit()
    return {"mockup_url": mockup_url, "width": width, "height": height}
