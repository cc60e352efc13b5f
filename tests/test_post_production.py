import subprocess
from datetime import datetime

import pytest

from app import models
from app.core.errors import AppError
from app.services import post_production
from app.services.brand import extract_palette, to_hex


class Completed:
    def __init__(self, returncode=0, stderr=""):
        self.returncode = returncode
        self.stderr = stderr


@pytest.fixture()
def recorded(monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        if cmd[-1].endswith(".mp4"):
            with open(cmd[-1], "wb") as f:
                f.write(b"joined")
        return Completed()

    monkeypatch.setattr(subprocess, "run", fake_run)
    return calls


def _clip(db, project, scene, url, **kwargs):
    gen = models.Generation(
        project_id=project.id,
        scene_id=scene.id,
        type=models.GenerationType.video,
        model="veo",
        config={"duration_seconds": scene.duration_seconds},
        status=models.GenerationStatus.completed,
        output_url=url,
        completed_at=datetime.utcnow(),
        **kwargs,
    )
    db.add(gen)
    db.commit()
    return gen


def test_available_handles_missing_binary(monkeypatch):
    def missing(*args, **kwargs):
        raise FileNotFoundError("ffmpeg")

    monkeypatch.setattr(subprocess, "run", missing)
    assert post_production.VideoProcessor().available() is False


def test_ffmpeg_failure_raises(monkeypatch):
    monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: Completed(1, "Invalid data found"))
    with pytest.raises(AppError, match="Invalid data found"):
        post_production.VideoProcessor()._run(["ffmpeg", "-i", "x"])


def test_overlay_filter_graph(recorded, tmp_path):
    post_production.VideoProcessor().overlay("in.mp4", "wm.png", str(tmp_path / "out.mp4"), "top-left", 0.4)
    graph = recorded[0][recorded[0].index("-filter_complex") + 1]
    assert graph == "[1:v]format=rgba,colorchannelmixer=aa=0.4[wm];[0:v][wm]overlay=10:10"


def test_latest_clip_per_scene(db, project, scenes):
    _clip(db, project, scenes[0], "https://storage.test/a-old.mp4", language="en")
    newest = _clip(db, project, scenes[0], "https://storage.test/a-new.mp4", language="en")
    _clip(db, project, scenes[1], "https://storage.test/b-de.mp4", language="de")

    clips = post_production.latest_scene_videos(db, project, language="en")
    assert [c.id for c in clips] == [newest.id]


def test_stitch_concatenates_with_ffmpeg(db, project, scenes, storage, recorded):
    for i, scene in enumerate(scenes):
        storage.objects[f"clips/{i}.mp4"] = b"clip"
        _clip(db, project, scene, f"https://storage.test/clips/{i}.mp4")

    result = post_production.stitch_project(db, project, storage, post_production.VideoProcessor())

    assert result["scenes_count"] == 3
    assert result["total_duration"] == 18.0
    assert storage.objects[f"{project.id}/final/{result['generation_id']}.mp4"] == b"joined"
    assert any("concat" in cmd for cmd in recorded)
    assert project.status == models.ProjectStatus.post_production


def test_export_matches_platform_or_aspect_ratio(db, project, scenes):
    _clip(db, project, scenes[0], "u1", platform="youtube", aspect_ratio="16:9")
    _clip(db, project, scenes[1], "u2", aspect_ratio="9:16")

    result = post_production.build_export_packages(db, project, ["youtube", "tiktok"])
    youtube, tiktok = result["export_packages"]
    assert [v["output_url"] for v in youtube["videos"]] == ["u1"]
    assert [v["output_url"] for v in tiktok["videos"]] == ["u2"]
    assert (tiktok["width"], tiktok["height"]) == (1080, 1920)
    assert result["total_videos"] == 2


def test_embed_caption(db, project, scenes):
    gen = _clip(db, project, scenes[0], "u")
    caption = models.Caption(generation_id=gen.id, language="en", srt_content="1\n")
    db.add(caption)
    db.commit()
    assert post_production.embed_caption(db, caption).is_embedded is True


def test_palette_ignores_non_images():
    assert extract_palette(b"%PDF-1.4") == []
    assert to_hex((0, 128, 255)) == "#0080FF"


def _watermark_kit(db, project, url):
    kit = models.BrandKit(user_id=project.user_id, name="Main", watermark_url=url)
    db.add(kit)
    db.commit()
    project.brand_kit_id = kit.id
    db.commit()
    db.refresh(project)


@pytest.mark.parametrize("url", ["/etc/passwd", "http://169.254.169.254/latest/meta-data/", "https://evil.test/wm.png"])
def test_watermark_outside_storage_is_rejected(db, project, scenes, storage, recorded, url):
    _watermark_kit(db, project, url)
    gen = _clip(db, project, scenes[0], "https://storage.test/clips/0.mp4")
    storage.download = lambda u: pytest.fail(f"downloaded {u}")

    with pytest.raises(AppError) as exc:
        post_production.apply_watermark(db, project, gen, storage, post_production.VideoProcessor())
    assert exc.value.status_code == 400
    assert recorded == []


def test_watermark_from_storage_is_overlaid(db, project, scenes, storage, recorded):
    storage.objects["brand/wm.png"] = b"png"
    storage.objects["clips/0.mp4"] = b"clip"
    _watermark_kit(db, project, "https://storage.test/brand/wm.png")
    gen = _clip(db, project, scenes[0], "https://storage.test/clips/0.mp4")

    result = post_production.apply_watermark(db, project, gen, storage, post_production.VideoProcessor())

    watermark = result.output_metadata["watermark"]
    assert watermark["applied"] is True
    assert storage.objects[f"{project.id}/watermarked/{gen.id}.mp4"] == b"joined"
