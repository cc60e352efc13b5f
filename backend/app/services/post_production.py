"""Stitching, watermarking and export packaging of generated clips."""
import logging
import os
import subprocess
import tempfile
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app import models
from app.core.constants import ASPECT_RATIOS, PLATFORMS
from app.core.errors import AppError
from app.services.storage import BaseStorage
from app.services.usage import notify

logger = logging.getLogger(__name__)

OVERLAY_POSITIONS = {
    "top-left": "10:10",
    "top-right": "W-w-10:10",
    "bottom-left": "10:H-h-10",
    "bottom-right": "W-w-10:H-h-10",
    "center": "(W-w)/2:(H-h)/2",
}
DEFAULT_WATERMARK_POSITION = "bottom-right"
DEFAULT_WATERMARK_OPACITY = 0.3


class VideoProcessor:
    """Thin wrapper around the ffmpeg binary."""

    def available(self) -> bool:
        try:
            result = subprocess.run(["ffmpeg", "-version"], capture_output=True, text=True, timeout=5)
        except (FileNotFoundError, subprocess.SubprocessError) as e:
            logger.warning("ffmpeg not available: %s", e)
            return False
        return result.returncode == 0

    def _run(self, cmd: List[str]) -> None:
        logger.debug("Running: %s", " ".join(cmd))
        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            raise AppError(f"ffmpeg failed: {result.stderr[-500:]}")

    def concat(self, inputs: List[str], output_path: str) -> str:
        list_path = output_path + ".txt"
        with open(list_path, "w") as f:
            for path in inputs:
                f.write(f"file '{os.path.abspath(path)}'\n")
        self._run(["ffmpeg", "-y", "-f", "concat", "-safe", "0", "-i", list_path, "-c", "copy", output_path])
        return output_path

    def overlay(self, video_path: str, image_path: str, output_path: str, position: str, opacity: float) -> str:
        xy = OVERLAY_POSITIONS.get(position, OVERLAY_POSITIONS[DEFAULT_WATERMARK_POSITION])
        filter_graph = f"[1:v]format=rgba,colorchannelmixer=aa={opacity}[wm];[0:v][wm]overlay={xy}"
        self._run([
            "ffmpeg", "-y",
            "-i", video_path,
            "-i", image_path,
            "-filter_complex", filter_graph,
            "-c:a", "copy",
            output_path,
        ])
        return output_path


def latest_scene_videos(
    db: Session,
    project: models.Project,
    language: Optional[str] = None,
    platform: Optional[str] = None,
) -> List[models.Generation]:
    """The newest completed clip of each scene, in scene order."""
    clips = []
    for scene in project.scenes:
        query = db.query(models.Generation).filter(
            models.Generation.scene_id == scene.id,
            models.Generation.type == models.GenerationType.video,
            models.Generation.status == models.GenerationStatus.completed,
            models.Generation.output_url.isnot(None),
        )
        if language:
            query = query.filter(models.Generation.language == language)
        if platform:
            query = query.filter(models.Generation.platform == platform)
        clip = query.order_by(models.Generation.completed_at.desc(), models.Generation.id.desc()).first()
        if clip is not None:
            clips.append(clip)
    return clips


def _download_all(storage: BaseStorage, urls: List[str], workdir: str) -> List[str]:
    paths = []
    for i, url in enumerate(urls):
        path = os.path.join(workdir, f"clip_{i}.mp4")
        with open(path, "wb") as f:
            f.write(storage.download(url))
        paths.append(path)
    return paths


def stitch_project(
    db: Session,
    project: models.Project,
    storage: BaseStorage,
    processor: VideoProcessor,
    language: Optional[str] = None,
    platform: Optional[str] = None,
) -> Dict:
    clips = latest_scene_videos(db, project, language, platform)
    if not clips:
        raise AppError("No completed scene videos to stitch", status_code=400)

    video_urls = [c.output_url for c in clips]
    total_duration = float(sum((c.config or {}).get("duration_seconds", 8) for c in clips))

    stitched = models.Generation(
        project_id=project.id,
        type=models.GenerationType.stitched,
        model="ffmpeg",
        config={
            "scene_generation_ids": [c.id for c in clips],
            "duration_seconds": total_duration,
        },
        language=language,
        platform=platform,
        aspect_ratio=clips[0].aspect_ratio,
        status=models.GenerationStatus.processing,
        estimated_cost_usd=0.0,
        started_at=datetime.utcnow(),
    )
    db.add(stitched)
    db.commit()

    metadata = {"video_urls": video_urls}
    if processor.available():
        try:
            with tempfile.TemporaryDirectory() as workdir:
                paths = _download_all(storage, video_urls, workdir)
                output_path = processor.concat(paths, os.path.join(workdir, "final.mp4"))
                with open(output_path, "rb") as f:
                    output_url = storage.upload_bytes(f"{project.id}/final/{stitched.id}.mp4", f.read(), "video/mp4")
        except Exception as e:
            stitched.status = models.GenerationStatus.failed
            stitched.error_message = str(e)
            stitched.completed_at = datetime.utcnow()
            db.commit()
            logger.error("Stitching project %s failed: %s", project.id, e)
            raise AppError(f"Stitching failed: {e}")
        metadata["stitched"] = True
    else:
        output_url = video_urls[0]
        metadata["stitched"] = False
        metadata["note"] = "ffmpeg unavailable, first clip used as placeholder"

    stitched.output_url = output_url
    stitched.output_metadata = metadata
    stitched.status = models.GenerationStatus.completed
    stitched.completed_at = datetime.utcnow()
    project.advance(models.ProjectStatus.post_production, 6)
    notify(
        db,
        project.user_id,
        models.NotificationType.generation_complete,
        title="Final video ready",
        message=f"{len(clips)} scenes stitched into a {total_duration:.0f}s video.",
        reference_id=stitched.id,
    )
    db.commit()
    db.refresh(stitched)
    logger.info("Project %s stitched into generation %s", project.id, stitched.id)

    return {
        "generation_id": stitched.id,
        "scenes_count": len(clips),
        "total_duration": total_duration,
        "video_urls": video_urls,
        "status": stitched.status.value,
    }


def build_export_packages(
    db: Session,
    project: models.Project,
    platforms: List[str],
    include_caption: bool = False,
    include_watermark: bool = False,
    resolution: Optional[str] = None,
) -> Dict:
    unknown = [p for p in platforms if p not in PLATFORMS]
    if unknown:
        raise AppError(f"Unknown platforms: {', '.join(unknown)}", status_code=400)

    resolution = resolution or "1080p"
    scale = 2 if resolution == "4k" else 1
    completed = (
        db.query(models.Generation)
        .filter(
            models.Generation.project_id == project.id,
            models.Generation.status == models.GenerationStatus.completed,
            models.Generation.type.in_([models.GenerationType.video, models.GenerationType.stitched]),
        )
        .order_by(models.Generation.id)
        .all()
    )

    packages = []
    for platform in platforms:
        target = PLATFORMS[platform]
        dims = ASPECT_RATIOS[target["aspect_ratio"]]
        videos = [
            {"generation_id": g.id, "type": g.type.value, "output_url": g.output_url, "language": g.language}
            for g in completed
            if g.platform == platform or (g.platform is None and g.aspect_ratio == target["aspect_ratio"])
        ]
        packages.append({
            "platform": platform,
            "platform_label": target["label"],
            "aspect_ratio": target["aspect_ratio"],
            "resolution": resolution,
            "width": dims["width"] * scale,
            "height": dims["height"] * scale,
            "include_caption": include_caption,
            "include_watermark": include_watermark,
            "videos": videos,
            "video_count": len(videos),
        })

    return {
        "project_id": project.id,
        "export_packages": packages,
        "total_platforms": len(packages),
        "total_videos": sum(p["video_count"] for p in packages),
    }


def apply_watermark(
    db: Session,
    project: models.Project,
    generation: models.Generation,
    storage: BaseStorage,
    processor: VideoProcessor,
    position: Optional[str] = None,
    opacity: Optional[float] = None,
) -> models.Generation:
    brand_kit = project.brand_kit
    if brand_kit is None or not brand_kit.watermark_url:
        raise AppError("Project brand kit has no watermark", status_code=400)
    if not storage.owns(brand_kit.watermark_url):
        raise AppError("Watermark must be an uploaded brand asset", status_code=400)
    if generation.status != models.GenerationStatus.completed or not generation.output_url:
        raise AppError("Only completed videos can be watermarked", status_code=400)

    position = position or brand_kit.watermark_position or DEFAULT_WATERMARK_POSITION
    if position not in OVERLAY_POSITIONS:
        raise AppError(f"Invalid watermark position: {position}", status_code=400)
    if opacity is None:
        opacity = brand_kit.watermark_opacity if brand_kit.watermark_opacity is not None else DEFAULT_WATERMARK_OPACITY

    watermark = {
        "watermark_url": brand_kit.watermark_url,
        "position": position,
        "opacity": opacity,
        "overlay": OVERLAY_POSITIONS[position],
        "applied": False,
    }
    if processor.available():
        with tempfile.TemporaryDirectory() as workdir:
            video_path = _download_all(storage, [generation.output_url], workdir)[0]
            image_path = os.path.join(workdir, "wm.png")
            with open(image_path, "wb") as f:
                f.write(storage.download(brand_kit.watermark_url))
            output_path = processor.overlay(video_path, image_path, os.path.join(workdir, "out.mp4"), position, opacity)
            with open(output_path, "rb") as f:
                watermark["output_url"] = storage.upload_bytes(
                    f"{project.id}/watermarked/{generation.id}.mp4", f.read(), "video/mp4"
                )
        watermark["applied"] = True

    metadata = dict(generation.output_metadata or {})
    metadata["watermark"] = watermark
    generation.output_metadata = metadata
    db.commit()
    db.refresh(generation)
    return generation


def embed_caption(db: Session, caption: models.Caption) -> models.Caption:
    caption.is_embedded = True
    db.commit()
    db.refresh(caption)
    return caption
