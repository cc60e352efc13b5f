"""Advance a video generation by checking its long-running operation."""
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session
from tenacity import Retrying, retry_if_result, stop_after_attempt

from app import models
from app.core.config import settings
from app.services.costs import estimate_video_cost, is_fast_model
from app.services.polling import PollingBackoff
from app.services.storage import BaseStorage
from app.services.usage import log_usage, notify
from app.services.video.base import BaseVideoService

logger = logging.getLogger(__name__)

PERMANENT_ERROR_MARKERS = (
    "invalid",
    "not found",
    "unauthorized",
    "forbidden",
    "permission",
    "blocked",
    "safety",
)


@dataclass
class PollResult:
    generation: models.Generation
    warning: Optional[str] = None


def classify_error(message: str) -> str:
    text = (message or "").lower()
    if any(marker in text for marker in PERMANENT_ERROR_MARKERS):
        return "permanent"
    return "transient"


def video_storage_path(generation: models.Generation) -> str:
    scene_part = generation.scene_id if generation.scene_id is not None else "unknown"
    return f"{generation.project_id}/scenes/{scene_part}/{generation.id}.mp4"


def _user_id(generation: models.Generation) -> str:
    return generation.project.user_id


def _fail(db: Session, generation: models.Generation, message: str) -> PollResult:
    generation.status = models.GenerationStatus.failed
    generation.error_message = message
    generation.completed_at = datetime.utcnow()
    notify(
        db,
        _user_id(generation),
        models.NotificationType.generation_failed,
        title="Video generation failed",
        message=message,
        reference_id=generation.id,
    )
    db.commit()
    db.refresh(generation)
    logger.warning("Generation %s failed: %s", generation.id, message)
    return PollResult(generation)


def _record_failure(
    db: Session,
    generation: models.Generation,
    message: str,
    transient: bool = False,
) -> PollResult:
    if not transient and classify_error(message) == "permanent":
        return _fail(db, generation, message)

    generation.retry_count = (generation.retry_count or 0) + 1
    max_retries = settings.GENERATION_MAX_RETRIES
    if generation.retry_count >= max_retries:
        return _fail(db, generation, f"Failed after {max_retries} attempts: {message}")

    generation.error_message = message
    db.commit()
    db.refresh(generation)
    logger.info("Generation %s transient error (%d/%d): %s",
                generation.id, generation.retry_count, max_retries, message)
    return PollResult(
        generation,
        warning=f"Transient error (attempt {generation.retry_count}/{max_retries}): {message}",
    )


def _complete(
    db: Session,
    generation: models.Generation,
    output_url: str,
    source_uri: Optional[str],
) -> PollResult:
    metadata = dict(generation.output_metadata or {})
    metadata.pop("veo_video_uri", None)
    if source_uri:
        metadata["source_uri"] = source_uri

    duration = (generation.config or {}).get("duration_seconds", 8)
    cost = generation.estimated_cost_usd
    if cost is None:
        cost = estimate_video_cost(duration, is_fast_model(generation.model))

    generation.status = models.GenerationStatus.completed
    generation.output_url = output_url
    generation.output_metadata = metadata
    generation.error_message = None
    generation.actual_cost_usd = cost
    generation.completed_at = datetime.utcnow()

    user_id = _user_id(generation)
    log_usage(
        db,
        user_id,
        api_service="veo",
        model=generation.model,
        operation="video_generation",
        estimated_cost_usd=cost,
        project_id=generation.project_id,
        generation_id=generation.id,
        duration_seconds=duration,
    )
    notify(
        db,
        user_id,
        models.NotificationType.generation_complete,
        title="Video ready",
        message=f"Scene video #{generation.id} finished generating.",
        reference_id=generation.id,
    )
    db.commit()
    db.refresh(generation)
    logger.info("Generation %s completed: %s", generation.id, output_url)
    return PollResult(generation)


def _store(
    generation: models.Generation,
    video_service: BaseVideoService,
    storage: BaseStorage,
    video_uri: Optional[str],
    video_bytes: Optional[bytes] = None,
) -> str:
    data = video_bytes if video_bytes is not None else video_service.download_video(video_uri)
    return storage.upload_bytes(video_storage_path(generation), data, "video/mp4")


def poll_generation(
    db: Session,
    generation: models.Generation,
    video_service: BaseVideoService,
    storage: BaseStorage,
    now: Optional[datetime] = None,
) -> PollResult:
    """
    One status check. Terminal rows and rows without an operation come back
    untouched; otherwise the row moves to completed, stays processing with a
    warning, or fails.
    """
    if generation.is_terminal:
        return PollResult(generation)
    if generation.status != models.GenerationStatus.processing or not generation.operation_name:
        return PollResult(generation)

    now = now or datetime.utcnow()
    started = generation.started_at or generation.created_at
    timeout_minutes = settings.GENERATION_TIMEOUT_MINUTES
    if started and now - started > timedelta(minutes=timeout_minutes):
        return _fail(db, generation, f"Generation timed out after {timeout_minutes} minutes")

    # a finished video whose upload failed last time
    pending_uri = (generation.output_metadata or {}).get("veo_video_uri")
    if pending_uri:
        try:
            url = _store(generation, video_service, storage, pending_uri)
        except Exception as e:
            return _record_failure(db, generation, f"Failed to store video: {e}", transient=True)
        return _complete(db, generation, url, pending_uri)

    try:
        operation = video_service.get_operation(generation.operation_name, generation.model)
    except Exception as e:
        return _record_failure(db, generation, str(e))

    if not operation.done:
        return PollResult(generation)
    if operation.error:
        return _record_failure(db, generation, operation.error)
    if not operation.video_uri and operation.video_bytes is None:
        return _fail(db, generation, "No video generated")

    try:
        url = _store(generation, video_service, storage, operation.video_uri, operation.video_bytes)
    except Exception as e:
        if operation.video_uri:
            metadata = dict(generation.output_metadata or {})
            metadata["veo_video_uri"] = operation.video_uri
            generation.output_metadata = metadata
        return _record_failure(db, generation, f"Failed to store video: {e}", transient=True)

    return _complete(db, generation, url, operation.video_uri)


def _poll_once(
    db: Session,
    generation_id: int,
    video_service: BaseVideoService,
    storage: BaseStorage,
    backoff: PollingBackoff,
) -> Optional[models.Generation]:
    generation = db.get(models.Generation, generation_id)
    if generation is None:
        return None
    failures_before = generation.retry_count or 0
    generation = poll_generation(db, generation, video_service, storage).generation
    backoff.record((generation.retry_count or 0) > failures_before)
    return generation


def _still_running(generation: Optional[models.Generation]) -> bool:
    return generation is not None and not generation.is_terminal


def poll_until_complete(
    db: Session,
    generation_id: int,
    video_service: BaseVideoService,
    storage: BaseStorage,
    backoff: Optional[PollingBackoff] = None,
    sleep: Callable[[float], None] = time.sleep,
    max_polls: int = 200,
) -> Optional[models.Generation]:
    """Poll until the generation is terminal, backing off on failed checks."""
    backoff = backoff or PollingBackoff()
    retrying = Retrying(
        retry=retry_if_result(_still_running),
        stop=stop_after_attempt(max_polls),
        wait=backoff,
        sleep=sleep,
        retry_error_callback=lambda state: state.outcome.result(),
    )
    return retrying(_poll_once, db, generation_id, video_service, storage, backoff)
