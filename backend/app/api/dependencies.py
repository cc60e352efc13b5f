from typing import Generator, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app import models
from app.db import SessionLocal
from app.services.budget import check_budget
from app.services.code_context import GitHubRepoFetcher
from app.services.context import ContextScraper
from app.services.image import ImagenService
from app.services.llm import LLMClient
from app.services.post_production import VideoProcessor
from app.services.rate_limit import check_rate_limit
from app.services.storage import BaseStorage, get_storage as _get_storage
from app.services.video.base import BaseVideoService
from app.services.video.veo import VeoVideoService
from app.services.voice import GeminiTTSService


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    # set by the auth proxy in front of the API
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


def get_llm_client() -> LLMClient:
    return LLMClient()


def get_video_service() -> BaseVideoService:
    return VeoVideoService()


def get_image_service() -> ImagenService:
    return ImagenService()


def get_tts_service() -> GeminiTTSService:
    return GeminiTTSService()


def get_storage() -> BaseStorage:
    return _get_storage()


def get_video_processor() -> VideoProcessor:
    return VideoProcessor()


def get_scraper() -> ContextScraper:
    return ContextScraper()


def get_github_fetcher() -> GitHubRepoFetcher:
    return GitHubRepoFetcher()


def ai_guard(category: str):
    """Rate limit plus monthly budget check in front of a billable AI route."""

    def guard(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)) -> None:
        check_rate_limit(db, user_id, category)
        check_budget(db, user_id)

    return guard


def get_owned_project(db: Session, project_id: int, user_id: str) -> models.Project:
    project = (
        db.query(models.Project)
        .filter(models.Project.id == project_id, models.Project.user_id == user_id)
        .first()
    )
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def get_owned_scene(db: Session, scene_id: int, user_id: str) -> models.Scene:
    scene = (
        db.query(models.Scene)
        .join(models.Project)
        .filter(models.Scene.id == scene_id, models.Project.user_id == user_id)
        .first()
    )
    if not scene:
        raise HTTPException(status_code=404, detail="Scene not found")
    return scene


def get_owned_code_context(db: Session, code_context_id: int, user_id: str) -> models.CodeContext:
    code_context = (
        db.query(models.CodeContext)
        .filter(models.CodeContext.id == code_context_id, models.CodeContext.user_id == user_id)
        .first()
    )
    if not code_context:
        raise HTTPException(status_code=404, detail="Code context not found")
    return code_context


def get_owned_generation(db: Session, generation_id: int, user_id: str) -> models.Generation:
    generation = (
        db.query(models.Generation)
        .join(models.Project)
        .filter(models.Generation.id == generation_id, models.Project.user_id == user_id)
        .first()
    )
    if not generation:
        raise HTTPException(status_code=404, detail="Generation not found")
    return generation
