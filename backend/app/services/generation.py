"""Creating generation rows and submitting them to the media models."""
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from app import models
from app.core.config_video import (
    GEMINI_TTS_MODEL_ID,
    IMAGEN_FAST_MODEL_ID,
    IMAGEN_MODEL_ID,
    VEO_FAST_MODEL_ID,
    VEO_MODEL_ID,
)
from app.core.constants import PLATFORMS
from app.core.errors import AppError, UpstreamAIError
from app.services.costs import estimate_image_cost, estimate_token_cost, estimate_video_cost
from app.services.image import ImagenService
from app.services.storage import BaseStorage
from app.services.usage import log_usage
from app.services.video.base import BaseVideoService
from app.services.voice import GeminiTTSService

logger = logging.getLogger(__name__)

DEFAULT_ASPECT_RATIO = "9:16"


def _mark_generating(project: models.Project) -> None:
    if project.status not in (models.ProjectStatus.post_production, models.ProjectStatus.completed):
        project.advance(models.ProjectStatus.generating, 5)


def create_video_generation(
    db: Session,
    project: models.Project,
    scene: models.Scene,
    *,
    language: Optional[str] = None,
    platform: Optional[str] = None,
    aspect_ratio: Optional[str] = None,
    use_fast_model: bool = False,
) -> models.Generation:
    model = VEO_FAST_MODEL_ID if use_fast_model else VEO_MODEL_ID
    aspect_ratio = aspect_ratio or scene.aspect_ratio or DEFAULT_ASPECT_RATIO
    duration = scene.duration_seconds or 8

    generation = models.Generation(
        project_id=project.id,
        scene_id=scene.id,
        type=models.GenerationType.video,
        prompt=scene.optimized_prompt or scene.description,
        model=model,
        config={
            "duration_seconds": duration,
            "aspect_ratio": aspect_ratio,
            "negative_prompt": scene.negative_prompt,
            "resolution": scene.resolution,
        },
        language=language,
        platform=platform,
        aspect_ratio=aspect_ratio,
        status=models.GenerationStatus.pending,
        estimated_cost_usd=estimate_video_cost(duration, use_fast_model),
    )
    db.add(generation)
    db.flush()
    return generation


def submit_video(
    db: Session,
    generation: models.Generation,
    video_service: BaseVideoService,
    source_video_uri: Optional[str] = None,
) -> models.Generation:
    """Send a pending row to the video model. A rejected submission fails the row and raises."""
    config = generation.config or {}
    try:
        operation_name = video_service.start_generation(
            generation.prompt,
            model=generation.model,
            aspect_ratio=config.get("aspect_ratio") or DEFAULT_ASPECT_RATIO,
            duration_seconds=config.get("duration_seconds", 8),
            negative_prompt=config.get("negative_prompt"),
            resolution=config.get("resolution"),
            source_video_uri=source_video_uri,
        )
    except Exception as e:
        generation.status = models.GenerationStatus.failed
        generation.error_message = str(e)
        generation.completed_at = datetime.utcnow()
        db.commit()
        logger.error("Submitting generation %s failed: %s", generation.id, e)
        if isinstance(e, AppError):
            raise
        raise UpstreamAIError(f"Video generation failed to start: {e}")

    generation.operation_name = operation_name
    generation.status = models.GenerationStatus.processing
    generation.started_at = datetime.utcnow()
    db.commit()
    db.refresh(generation)
    logger.info("Generation %s submitted: %s", generation.id, operation_name)
    return generation


def start_video_generation(
    db: Session,
    project: models.Project,
    scene: models.Scene,
    video_service: BaseVideoService,
    **options,
) -> models.Generation:
    generation = create_video_generation(db, project, scene, **options)
    _mark_generating(project)
    db.commit()
    return submit_video(db, generation, video_service)


def expand_batch(
    scenes: Iterable[models.Scene],
    languages: Iterable[Optional[str]],
    platforms: Iterable[Optional[str]],
) -> List[Tuple[models.Scene, Optional[str], Optional[str], Optional[str]]]:
    """Every (scene, language, platform) cell with the aspect ratio that platform wants."""
    cells = []
    for language in languages:
        for platform in platforms:
            aspect_ratio = PLATFORMS[platform]["aspect_ratio"] if platform in PLATFORMS else None
            for scene in scenes:
                cells.append((scene, language, platform, aspect_ratio))
    return cells


def submit_batch(
    db: Session,
    project: models.Project,
    scenes: List[models.Scene],
    video_service: BaseVideoService,
    languages: Optional[List[str]] = None,
    platforms: Optional[List[str]] = None,
    use_fast_model: bool = False,
) -> Tuple[List[models.Generation], int]:
    """Submit every cell; one failed cell does not stop the rest. Returns (generations, failed)."""
    languages = languages or project.languages or [None]
    platforms = platforms or project.target_platforms or [None]

    generations = []
    failed = 0
    _mark_generating(project)
    for scene, language, platform, aspect_ratio in expand_batch(scenes, languages, platforms):
        generation = create_video_generation(
            db,
            project,
            scene,
            language=language,
            platform=platform,
            aspect_ratio=aspect_ratio,
            use_fast_model=use_fast_model,
        )
        db.commit()
        try:
            submit_video(db, generation, video_service)
        except AppError:
            failed += 1
        generations.append(generation)
    return generations, failed


def retry_video_generation(
    db: Session,
    generation: models.Generation,
    video_service: BaseVideoService,
) -> models.Generation:
    if generation.type != models.GenerationType.video:
        raise AppError("Only video generations can be retried", status_code=400)
    if generation.status != models.GenerationStatus.failed:
        raise AppError("Only failed generations can be retried", status_code=400)
    if generation.scene_id is None:
        raise AppError("Generation has no scene to retry", status_code=400)

    scene = generation.scene
    if scene is not None:
        generation.prompt = scene.optimized_prompt or scene.description
    generation.status = models.GenerationStatus.pending
    generation.retry_count = 0
    generation.error_message = None
    generation.operation_name = None
    generation.started_at = None
    generation.completed_at = None
    metadata = dict(generation.output_metadata or {})
    metadata.pop("veo_video_uri", None)
    generation.output_metadata = metadata
    db.commit()
    return submit_video(db, generation, video_service)


def extend_video_generation(
    db: Session,
    source: models.Generation,
    prompt: str,
    video_service: BaseVideoService,
    duration_seconds: Optional[int] = None,
) -> models.Generation:
    """Continue a finished clip from its last frames."""
    if source.type != models.GenerationType.video or source.status != models.GenerationStatus.completed:
        raise AppError("Only completed video generations can be extended", status_code=400)
    source_uri = (source.output_metadata or {}).get("source_uri")
    if not source_uri:
        raise AppError("Source video is not available for extension", status_code=400)

    config = dict(source.config or {})
    duration = duration_seconds or config.get("duration_seconds", 8)
    config["duration_seconds"] = duration
    config["extended_from"] = source.id
    fast = source.model == VEO_FAST_MODEL_ID

    generation = models.Generation(
        project_id=source.project_id,
        scene_id=source.scene_id,
        type=models.GenerationType.video,
        prompt=prompt,
        model=source.model,
        config=config,
        language=source.language,
        platform=source.platform,
        aspect_ratio=source.aspect_ratio,
        status=models.GenerationStatus.pending,
        estimated_cost_usd=estimate_video_cost(duration, fast, config.get("resolution")),
    )
    db.add(generation)
    db.commit()
    return submit_video(db, generation, video_service, source_video_uri=source_uri)


def generate_image(
    db: Session,
    project: models.Project,
    prompt: str,
    image_service: ImagenService,
    storage: BaseStorage,
    *,
    aspect_ratio: Optional[str] = None,
    use_fast_model: bool = False,
    purpose: str = "thumbnail",
) -> models.Generation:
    model = IMAGEN_FAST_MODEL_ID if use_fast_model else IMAGEN_MODEL_ID
    cost = estimate_image_cost(use_fast_model)
    generation = models.Generation(
        project_id=project.id,
        type=models.GenerationType.image,
        prompt=prompt,
        model=model,
        config={"purpose": purpose, "aspect_ratio": aspect_ratio},
        aspect_ratio=aspect_ratio,
        status=models.GenerationStatus.processing,
        estimated_cost_usd=cost,
        started_at=datetime.utcnow(),
    )
    db.add(generation)
    db.commit()

    try:
        data = image_service.generate(prompt, model=model, aspect_ratio=aspect_ratio)
        url = storage.upload_bytes(f"{project.id}/images/{generation.id}.png", data, "image/png")
    except Exception as e:
        generation.status = models.GenerationStatus.failed
        generation.error_message = str(e)
        generation.completed_at = datetime.utcnow()
        db.commit()
        if isinstance(e, AppError):
            raise
        raise UpstreamAIError(f"Image generation failed: {e}")

    generation.status = models.GenerationStatus.completed
    generation.output_url = url
    generation.actual_cost_usd = cost
    generation.completed_at = datetime.utcnow()
    log_usage(
        db,
        project.user_id,
        api_service="imagen",
        model=model,
        operation=f"image_{purpose}",
        estimated_cost_usd=cost,
        project_id=project.id,
        generation_id=generation.id,
    )
    db.commit()
    db.refresh(generation)
    return generation


def generate_voiceover(
    db: Session,
    project: models.Project,
    text: str,
    language: str,
    tts_service: GeminiTTSService,
    storage: BaseStorage,
    *,
    scene: Optional[models.Scene] = None,
    voice_name: Optional[str] = None,
) -> models.Generation:
    # rough 4 characters per token
    cost = estimate_token_cost(GEMINI_TTS_MODEL_ID, max(len(text) // 4, 1), 0)
    generation = models.Generation(
        project_id=project.id,
        scene_id=scene.id if scene else None,
        type=models.GenerationType.voiceover,
        prompt=text,
        model=GEMINI_TTS_MODEL_ID,
        config={"voice_name": voice_name},
        language=language,
        status=models.GenerationStatus.processing,
        estimated_cost_usd=cost,
        started_at=datetime.utcnow(),
    )
    db.add(generation)
    db.commit()

    target = scene.id if scene else "full"
    try:
        audio = tts_service.synthesize(text, language, voice_name)
        url = storage.upload_bytes(f"{project.id}/voiceovers/{target}_{language}.wav", audio, "audio/wav")
    except Exception as e:
        generation.status = models.GenerationStatus.failed
        generation.error_message = str(e)
        generation.completed_at = datetime.utcnow()
        db.commit()
        if isinstance(e, AppError):
            raise
        raise UpstreamAIError(f"Voiceover generation failed: {e}")

    generation.status = models.GenerationStatus.completed
    generation.output_url = url
    generation.actual_cost_usd = cost
    generation.completed_at = datetime.utcnow()
    if scene is not None:
        scene.voiceover_text = text
        scene.voiceover_language = language
        scene.voiceover_voice = voice_name
    log_usage(
        db,
        project.user_id,
        api_service="tts",
        model=GEMINI_TTS_MODEL_ID,
        operation="voiceover",
        estimated_cost_usd=cost,
        project_id=project.id,
        generation_id=generation.id,
    )
    db.commit()
    db.refresh(generation)
    return generation
