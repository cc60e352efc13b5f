"""
The AI half of the workflow: strategy, scenes, Veo prompts, refinement,
captions and performance insights.

Each step calls the LLM, parses its JSON defensively, writes the result onto
the project, snapshots it as a ProjectVersion and logs the token spend.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app import models
from app.core.config_video import GEMINI_FLASH_MODEL_ID, GEMINI_PRO_MODEL_ID
from app.core.constants import PLATFORMS, clamp_scene_duration
from app.core.errors import AppError, UpstreamAIError
from app.services.ai_json import AIJSONError, parse_ai_json
from app.services.costs import estimate_token_cost
from app.services.llm import LLMClient, LLMResult, dumps_for_prompt
from app.services.prompt_builder import (
    CAPTION_SYSTEM_PROMPT,
    INSIGHTS_SYSTEM_PROMPT,
    REFINE_SYSTEM_PROMPT,
    SCENES_SYSTEM_PROMPT,
    STRATEGY_SYSTEM_PROMPT,
    VEO_OPTIMIZER_SYSTEM_PROMPT,
    PromptBuilder,
)
from app.services.storage import BaseStorage
from app.services.usage import log_usage

logger = logging.getLogger(__name__)

SUCCESS_CTR = 3.0
TREND_RATIO = 1.2


def _ask(
    db: Session,
    llm: LLMClient,
    project: models.Project,
    *,
    system_prompt: str,
    user_prompt: str,
    model: str,
    operation: str,
    temperature: float = 0.7,
    max_tokens: int = 4096,
    required_keys: Iterable[str] = (),
) -> Tuple[Any, LLMResult]:
    result = llm.generate(
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    try:
        data = parse_ai_json(result.text, required_keys=required_keys)
    except AIJSONError as e:
        logger.error("Unparseable %s response for project %s: %s", operation, project.id, e)
        raise UpstreamAIError(f"AI returned an invalid {operation} response: {e}")

    if not result.cached:
        log_usage(
            db,
            project.user_id,
            api_service="gemini",
            model=result.model,
            operation=operation,
            estimated_cost_usd=estimate_token_cost(result.model, result.input_tokens, result.output_tokens),
            project_id=project.id,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
        )
    return data, result


def save_version(
    db: Session,
    project: models.Project,
    step: str,
    snapshot: Any,
    change_description: Optional[str] = None,
) -> models.ProjectVersion:
    latest = (
        db.query(func.max(models.ProjectVersion.version_number))
        .filter(models.ProjectVersion.project_id == project.id, models.ProjectVersion.step == step)
        .scalar()
    )
    version = models.ProjectVersion(
        project_id=project.id,
        step=step,
        version_number=(latest or 0) + 1,
        snapshot=snapshot,
        change_description=change_description,
    )
    db.add(version)
    return version


def scene_snapshot(scene: models.Scene) -> Dict[str, Any]:
    return {
        "scene_number": scene.scene_number,
        "title": scene.title,
        "description": scene.description,
        "duration_seconds": scene.duration_seconds,
        "aspect_ratio": scene.aspect_ratio,
        "resolution": scene.resolution,
        "camera_movement": scene.camera_movement,
        "lighting": scene.lighting,
        "text_overlay": scene.text_overlay,
        "audio_type": scene.audio_type.value if scene.audio_type else None,
        "voiceover_text": scene.voiceover_text,
        "voiceover_language": scene.voiceover_language,
        "voiceover_voice": scene.voiceover_voice,
        "reference_image_urls": scene.reference_image_urls,
        "user_prompt": scene.user_prompt,
        "optimized_prompt": scene.optimized_prompt,
        "negative_prompt": scene.negative_prompt,
    }


def scene_from_snapshot(item: Dict[str, Any], index: int) -> models.Scene:
    """Rebuild a Scene row from a scene_snapshot() dict; index is its position."""
    title = item.get("title") or f"Scene {index + 1}"
    return models.Scene(
        scene_number=index + 1,
        title=title,
        description=item.get("description") or title,
        duration_seconds=clamp_scene_duration(item.get("duration_seconds")),
        aspect_ratio=item.get("aspect_ratio") or "9:16",
        resolution=item.get("resolution") or "1080p",
        camera_movement=item.get("camera_movement"),
        lighting=item.get("lighting"),
        text_overlay=item.get("text_overlay"),
        audio_type=_audio_type(item.get("audio_type")),
        voiceover_text=item.get("voiceover_text"),
        voiceover_language=item.get("voiceover_language"),
        voiceover_voice=item.get("voiceover_voice"),
        reference_image_urls=item.get("reference_image_urls"),
        user_prompt=item.get("user_prompt"),
        optimized_prompt=item.get("optimized_prompt"),
        negative_prompt=item.get("negative_prompt"),
        sort_order=index,
    )


def restore_prompts(project: models.Project, snapshot: List[Dict[str, Any]]) -> int:
    """Put a "prompts" version back onto the scenes it was taken from."""
    by_id = {scene.id: scene for scene in project.scenes}
    restored = 0
    for item in snapshot or []:
        scene = by_id.get(item.get("scene_id"))
        if scene is None:
            continue
        scene.optimized_prompt = item.get("optimized_prompt")
        scene.negative_prompt = item.get("negative_prompt")
        scene.prompt_approved = False
        restored += 1
    if not restored:
        raise AppError("The scenes in this prompt version no longer exist", status_code=400)
    return restored


def _ctr(impressions: int, clicks: int) -> float:
    return clicks / impressions * 100 if impressions else 0.0


def performance_by_version(db: Session, user_id: str) -> Dict[str, Dict[str, float]]:
    rows = (
        db.query(
            models.CampaignPerformance.version_type,
            func.sum(models.CampaignPerformance.impressions),
            func.sum(models.CampaignPerformance.clicks),
            func.sum(models.CampaignPerformance.conversions),
            func.sum(models.CampaignPerformance.spend_usd),
        )
        .filter(models.CampaignPerformance.user_id == user_id)
        .group_by(models.CampaignPerformance.version_type)
        .all()
    )
    summary = {}
    for version_type, impressions, clicks, conversions, spend in rows:
        key = version_type.value if version_type else "single"
        summary[key] = {
            "impressions": int(impressions or 0),
            "clicks": int(clicks or 0),
            "conversions": int(conversions or 0),
            "spend_usd": float(spend or 0.0),
            "ctr": round(_ctr(impressions or 0, clicks or 0), 2),
        }
    return summary


def build_performance_context(db: Session, user_id: str) -> str:
    summary = performance_by_version(db, user_id)
    emotional = summary.get("emotional")
    technical = summary.get("technical")
    if not emotional or not technical:
        return ""
    better = "emotional" if emotional["ctr"] >= technical["ctr"] else "technical"
    return (
        "\n## Past Campaign Performance\n"
        f"Emotional videos CTR: {emotional['ctr']}%, technical videos CTR: {technical['ctr']}%.\n"
        f"The {better} approach has performed better for this account so far."
    )


def generate_strategy(db: Session, project: models.Project, llm: LLMClient, ab_test: bool = False) -> Tuple[dict, bool]:
    brand_context = PromptBuilder.build_brand_context(project.brand_kit)
    user_prompt = PromptBuilder.build_strategy_prompt(
        project,
        brand_context,
        build_performance_context(db, project.user_id),
        ab_test=ab_test,
    )
    required = ("version_a", "version_b") if ab_test else ("hook", "key_messages", "cta")
    strategy, result = _ask(
        db,
        llm,
        project,
        system_prompt=STRATEGY_SYSTEM_PROMPT,
        user_prompt=user_prompt,
        model=GEMINI_PRO_MODEL_ID,
        operation="strategy",
        temperature=0.7,
        required_keys=required,
    )

    project.strategy = strategy
    project.strategy_approved = False
    project.advance(models.ProjectStatus.strategy_ready, 2)
    save_version(db, project, "strategy", strategy, "A/B strategy generated" if ab_test else "Strategy generated")
    db.commit()
    db.refresh(project)
    return strategy, result.cached


def _active_strategy(project: models.Project) -> dict:
    strategy = project.strategy or {}
    if "version_a" in strategy:
        if project.version_type == models.VersionType.technical:
            return strategy.get("version_b") or {}
        return strategy.get("version_a") or {}
    return strategy


def _audio_type(value) -> models.AudioType:
    try:
        return models.AudioType(value)
    except ValueError:
        return models.AudioType.native_veo


def generate_scenes(db: Session, project: models.Project, llm: LLMClient) -> List[models.Scene]:
    if not project.strategy:
        raise AppError("Generate a strategy before creating scenes", status_code=400)

    brand_context = PromptBuilder.build_brand_context(project.brand_kit)
    data, _ = _ask(
        db,
        llm,
        project,
        system_prompt=SCENES_SYSTEM_PROMPT,
        user_prompt=PromptBuilder.build_scenes_prompt(project, _active_strategy(project), brand_context),
        model=GEMINI_PRO_MODEL_ID,
        operation="scenes",
        temperature=0.7,
        max_tokens=8192,
        required_keys=("scenes",),
    )
    raw_scenes = data["scenes"]
    if not isinstance(raw_scenes, list) or not raw_scenes:
        raise UpstreamAIError("AI returned no scenes")

    platforms = project.target_platforms or []
    aspect_ratio = PLATFORMS[platforms[0]]["aspect_ratio"] if platforms and platforms[0] in PLATFORMS else "9:16"

    project.scenes.clear()
    db.flush()
    number = 0
    for raw in raw_scenes:
        if not isinstance(raw, dict):
            continue
        number += 1
        title = str(raw.get("title") or f"Scene {number}")
        project.scenes.append(
            models.Scene(
                scene_number=number,
                title=title,
                description=str(raw.get("description") or title),
                duration_seconds=clamp_scene_duration(raw.get("duration_seconds")),
                aspect_ratio=aspect_ratio,
                camera_movement=raw.get("camera_movement"),
                lighting=raw.get("lighting"),
                text_overlay=raw.get("text_overlay"),
                audio_type=_audio_type(raw.get("audio_type")),
                voiceover_text=raw.get("voiceover_text"),
                sort_order=number - 1,
            )
        )

    project.advance(models.ProjectStatus.scenes_ready, 3)
    db.flush()
    save_version(db, project, "scenes", [scene_snapshot(s) for s in project.scenes], "Scenes generated")
    db.commit()
    db.refresh(project)
    return list(project.scenes)


def optimize_prompts(
    db: Session,
    project: models.Project,
    llm: LLMClient,
    scene_id: Optional[int] = None,
) -> List[models.Scene]:
    scenes = list(project.scenes)
    if scene_id is not None:
        scenes = [s for s in scenes if s.id == scene_id]
        if not scenes:
            raise AppError("Scene not found", status_code=404)
    if not scenes:
        raise AppError("Project has no scenes to optimize", status_code=400)

    brand_context = PromptBuilder.build_brand_context(project.brand_kit)
    for scene in scenes:
        data, _ = _ask(
            db,
            llm,
            project,
            system_prompt=VEO_OPTIMIZER_SYSTEM_PROMPT,
            user_prompt=PromptBuilder.build_veo_prompt(scene, project, brand_context),
            model=GEMINI_FLASH_MODEL_ID,
            operation="prompt_optimization",
            temperature=0.5,
            required_keys=("optimized_prompt",),
        )
        scene.optimized_prompt = str(data["optimized_prompt"])
        scene.negative_prompt = data.get("negative_prompt")
        scene.prompt_approved = False

    if all(s.optimized_prompt for s in project.scenes):
        project.advance(models.ProjectStatus.prompts_ready, 4)
    save_version(
        db,
        project,
        "prompts",
        [{"scene_id": s.id, "optimized_prompt": s.optimized_prompt, "negative_prompt": s.negative_prompt}
         for s in scenes],
        "Prompts optimized",
    )
    db.commit()
    return scenes


def refine_content(
    db: Session,
    project: models.Project,
    llm: LLMClient,
    content_type: str,
    current_content: Any,
    refinement_request: str,
) -> Dict[str, Any]:
    data, _ = _ask(
        db,
        llm,
        project,
        system_prompt=REFINE_SYSTEM_PROMPT,
        user_prompt=PromptBuilder.build_refine_prompt(content_type, current_content, refinement_request),
        model=GEMINI_PRO_MODEL_ID,
        operation=f"refine_{content_type}",
        temperature=0.5,
        max_tokens=8192,
        required_keys=("updated_content",),
    )
    db.commit()
    return {"updated_content": data["updated_content"], "explanation": data.get("explanation") or ""}


def generate_captions(
    db: Session,
    project: models.Project,
    generation: models.Generation,
    language: str,
    llm: LLMClient,
    storage: BaseStorage,
) -> models.Caption:
    scenes = list(project.scenes)
    if generation.scene_id is not None:
        scenes = [s for s in scenes if s.id == generation.scene_id] or scenes
    if not scenes:
        raise AppError("Project has no scenes to caption", status_code=400)

    data, _ = _ask(
        db,
        llm,
        project,
        system_prompt=CAPTION_SYSTEM_PROMPT,
        user_prompt=PromptBuilder.build_caption_prompt(scenes, language),
        model=GEMINI_FLASH_MODEL_ID,
        operation="captions",
        temperature=0.3,
        required_keys=("srt_content",),
    )
    srt = str(data["srt_content"]).strip() + "\n"
    url = storage.upload_bytes(f"{project.id}/captions/{language}.srt", srt.encode("utf-8"), "text/plain")

    caption = models.Caption(generation_id=generation.id, language=language, srt_content=srt, srt_url=url)
    db.add(caption)
    db.commit()
    db.refresh(caption)
    return caption


def rule_based_insights(summary: Dict[str, Dict[str, float]]) -> List[Dict[str, str]]:
    if not summary:
        return [{"type": "info", "message": "No campaign performance data yet. Publish ads to start collecting insights."}]

    impressions = sum(v["impressions"] for v in summary.values())
    clicks = sum(v["clicks"] for v in summary.values())
    conversions = sum(v["conversions"] for v in summary.values())
    spend = sum(v["spend_usd"] for v in summary.values())
    ctr = _ctr(impressions, clicks)

    insights = []
    if ctr > SUCCESS_CTR:
        insights.append({"type": "success", "message": f"Average CTR of {ctr:.2f}% is above the {SUCCESS_CTR:.0f}% benchmark."})
    else:
        insights.append({"type": "info", "message": f"Average CTR is {ctr:.2f}%. Stronger hooks usually lift it."})

    emotional = summary.get("emotional")
    technical = summary.get("technical")
    if emotional and technical and emotional["ctr"] and technical["ctr"]:
        high, low = (emotional, technical) if emotional["ctr"] >= technical["ctr"] else (technical, emotional)
        ratio = high["ctr"] / low["ctr"]
        if ratio > TREND_RATIO:
            winner = "Emotional" if high is emotional else "Technical"
            insights.append({"type": "trend", "message": f"{winner} videos get {ratio:.1f}x the CTR of the other version."})

    if conversions:
        insights.append({"type": "info", "message": f"Cost per acquisition is ${spend / conversions:.2f} across {conversions} conversions."})
    elif spend > 0:
        insights.append({"type": "warning", "message": f"${spend:.2f} spent without a conversion. Review targeting and CTA."})
    return insights


def generate_insights(db: Session, user_id: str, llm: Optional[LLMClient] = None) -> Tuple[List[Dict[str, str]], bool]:
    summary = performance_by_version(db, user_id)
    if not summary or llm is None or not llm.configured:
        return rule_based_insights(summary), False

    try:
        result = llm.generate(
            system_prompt=INSIGHTS_SYSTEM_PROMPT,
            user_prompt=f"Campaign performance by video version:\n{dumps_for_prompt(summary)}",
            model=GEMINI_FLASH_MODEL_ID,
            temperature=0.4,
            max_tokens=1024,
        )
        data = parse_ai_json(result.text)
    except (UpstreamAIError, AIJSONError) as e:
        logger.warning("LLM insights failed, using rules: %s", e)
        return rule_based_insights(summary), False

    if isinstance(data, dict):
        data = data.get("insights", [])
    insights = [
        {"type": str(item.get("type") or "info"), "message": str(item["message"])}
        for item in data
        if isinstance(item, dict) and item.get("message")
    ]
    if not insights:
        return rule_based_insights(summary), False

    if not result.cached:
        log_usage(
            db,
            user_id,
            api_service="gemini",
            model=result.model,
            operation="insights",
            estimated_cost_usd=estimate_token_cost(result.model, result.input_tokens, result.output_tokens),
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
        )
        db.commit()
    return insights, result.cached
