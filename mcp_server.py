# mcp_server.py
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

# Add backend directory to Python path
backend_dir = Path(__file__).parent / "backend"
sys.path.insert(0, str(backend_dir))

# Change working directory to backend so database path is correct
os.chdir(str(backend_dir))

from mcp.server.fastmcp import FastMCP

from app.db.session import SessionLocal, engine
from app.db.base import Base
from app import models
from app.core.config import settings
from app.core.constants import PLATFORMS
from app.core.errors import AppError
from app.services import creative
from app.services import generation as generation_service
from app.services.budget import check_budget
from app.services.generation_status import poll_generation
from app.services.llm import LLMClient
from app.services.rate_limit import check_rate_limit
from app.services.storage import get_storage
from app.services.video.veo import VeoVideoService

# Ensure all tables are created
Base.metadata.create_all(bind=engine)

mcp = FastMCP("MarketingVideoStudio")
llm = LLMClient()
video_service = VeoVideoService()


def _project(db, user_id: str, project_id: int) -> models.Project:
    project = (
        db.query(models.Project)
        .filter(models.Project.id == project_id, models.Project.user_id == user_id)
        .first()
    )
    if not project:
        raise AppError(f"Project {project_id} not found", status_code=404)
    return project


def _guard(db, user_id: str, category: str) -> None:
    check_rate_limit(db, user_id, category)
    check_budget(db, user_id)


@mcp.tool()
def create_project_brief(
    user_id: str,
    title: str,
    product_name: str,
    target_platforms: List[str],
    languages: List[str],
    style: str,
    tone: str,
    product_description: str = "",
    target_audience: str = "",
) -> str:
    """
    Start a marketing video project from a product brief.

    Args:
        user_id: Owner of the project.
        target_platforms: Any of instagram_reels, tiktok, youtube_shorts, youtube,
            linkedin, twitter, facebook_feed.
        languages: Language codes, e.g. ["en", "de"].

    Returns:
        The new project id, to pass to the other tools.
    """
    unknown = [p for p in target_platforms if p not in PLATFORMS]
    if unknown:
        return f"[ERROR] Unknown platform(s): {', '.join(unknown)}"

    db = SessionLocal()
    try:
        project = models.Project(
            user_id=user_id,
            title=title,
            product_name=product_name,
            product_description=product_description or None,
            target_platforms=target_platforms,
            target_audience=target_audience or None,
            languages=languages,
            style=style,
            tone=tone,
        )
        db.add(project)
        db.commit()
        return f"[OK] Project {project.id} created. Next: generate_strategy(project_id={project.id})."
    finally:
        db.close()


@mcp.tool()
def generate_strategy(user_id: str, project_id: int, ab_test: bool = False) -> str:
    """Generate the marketing strategy (two versions when ab_test is true). Returns it as JSON."""
    db = SessionLocal()
    try:
        _guard(db, user_id, "ai-gemini")
        strategy, cached = creative.generate_strategy(db, _project(db, user_id, project_id), llm, ab_test=ab_test)
        return json.dumps({"strategy": strategy, "cached": cached}, indent=2, ensure_ascii=False)
    except AppError as e:
        return f"[ERROR] {e.message}"
    finally:
        db.close()


@mcp.tool()
def generate_scene_breakdown(user_id: str, project_id: int) -> str:
    """Split the project's strategy into 4/6/8 second scenes. Replaces existing scenes."""
    db = SessionLocal()
    try:
        _guard(db, user_id, "ai-gemini")
        scenes = creative.generate_scenes(db, _project(db, user_id, project_id), llm)
        return json.dumps([
            {"scene_id": s.id, **creative.scene_snapshot(s)} for s in scenes
        ], indent=2, ensure_ascii=False)
    except AppError as e:
        return f"[ERROR] {e.message}"
    finally:
        db.close()


@mcp.tool()
def optimize_scene_prompts(user_id: str, project_id: int, scene_id: Optional[int] = None) -> str:
    """Write Veo prompts for one scene, or every scene when scene_id is omitted."""
    db = SessionLocal()
    try:
        _guard(db, user_id, "ai-gemini")
        scenes = creative.optimize_prompts(db, _project(db, user_id, project_id), llm, scene_id=scene_id)
        return json.dumps([
            {"scene_id": s.id, "optimized_prompt": s.optimized_prompt, "negative_prompt": s.negative_prompt}
            for s in scenes
        ], indent=2, ensure_ascii=False)
    except AppError as e:
        return f"[ERROR] {e.message}"
    finally:
        db.close()


@mcp.tool()
def generate_scene_video(
    user_id: str,
    project_id: int,
    scene_id: int,
    platform: Optional[str] = None,
    language: Optional[str] = None,
    use_fast_model: bool = False,
) -> str:
    """
    Submit one scene to Veo. Generation takes minutes: poll with
    check_generation_status(generation_id=...) until it is completed or failed.
    """
    db = SessionLocal()
    try:
        _guard(db, user_id, "ai-media")
        project = _project(db, user_id, project_id)
        scene = next((s for s in project.scenes if s.id == scene_id), None)
        if scene is None:
            return f"[ERROR] Scene {scene_id} not found in project {project_id}"
        aspect_ratio = PLATFORMS[platform]["aspect_ratio"] if platform in PLATFORMS else None
        generation = generation_service.start_video_generation(
            db,
            project,
            scene,
            video_service,
            language=language,
            platform=platform,
            aspect_ratio=aspect_ratio,
            use_fast_model=use_fast_model,
        )
        return (
            f"[OK] Generation {generation.id} is {generation.status.value} "
            f"(estimated ${generation.estimated_cost_usd:.2f})."
        )
    except AppError as e:
        return f"[ERROR] {e.message}"
    finally:
        db.close()


@mcp.tool()
def check_generation_status(user_id: str, generation_id: int) -> str:
    """Check a video generation once; stores the video when it has finished."""
    db = SessionLocal()
    try:
        generation = (
            db.query(models.Generation)
            .join(models.Project)
            .filter(models.Generation.id == generation_id, models.Project.user_id == user_id)
            .first()
        )
        if not generation:
            return f"[ERROR] Generation {generation_id} not found"
        result = poll_generation(db, generation, video_service, get_storage())
        generation = result.generation
        return json.dumps({
            "generation_id": generation.id,
            "status": generation.status.value,
            "output_url": generation.output_url,
            "error_message": generation.error_message,
            "retry_count": generation.retry_count,
            "max_retries": settings.GENERATION_MAX_RETRIES,
            "warning": result.warning,
        }, indent=2)
    finally:
        db.close()


if __name__ == "__main__":
    mcp.run()
