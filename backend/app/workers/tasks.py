# app/workers/tasks.py

import logging

from app.db.session import SessionLocal
from app.services.generation_status import poll_until_complete
from app.services.polling import PollingBackoff
from app.services.storage import get_storage
from app.services.video.veo import VeoVideoService

logger = logging.getLogger(__name__)

video_service = VeoVideoService()


def poll_generation_task(generation_id: int) -> str:
    """
    RQ worker task: follow one video generation until it completes or fails,
    so nobody has to keep the status endpoint open.
    """
    db = SessionLocal()
    try:
        generation = poll_until_complete(
            db,
            generation_id,
            video_service,
            get_storage(),
            backoff=PollingBackoff(),
        )
        if generation is None:
            return f"generation_id={generation_id} not found"
        logger.info("Generation %s finished polling with status %s", generation_id, generation.status.value)
        return f"generation {generation_id}: {generation.status.value}"
    except Exception as e:
        db.rollback()
        logger.error("Polling generation %s crashed: %s", generation_id, e, exc_info=True)
        raise
    finally:
        db.close()
