import io
from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from PIL import Image

from app import models
from app.main import app

from conftest import OTHER_USER_ID, USER_ID

API = "/api/v1"

PROJECT_IN = {
    "title": "Summer promo",
    "product_name": "Eventful",
    "target_platforms": ["tiktok"],
    "languages": ["en"],
    "style": "cinematic",
    "tone": "playful",
}

STRATEGY = {"hook": "h", "key_messages": ["m"], "cta": "c"}


def _generate(client, project, scene):
    response = client.post(f"{API}/generate/video", json={"project_id": project.id, "scene_id": scene.id})
    assert response.status_code == 201, response.text
    return response.json()


def _complete(client, video_service, generation):
    video_service.finish(generation["operation_name"])
    response = client.get(f"{API}/generate/video/status", params={"generation_id": generation["id"]})
    assert response.json()["status"] == "completed"
    return response.json()


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
    assert client.get(f"{API}/health").status_code == 200


def test_missing_user_header_is_unauthorized(client):
    bare = TestClient(app)
    response = bare.get(f"{API}/projects/")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_not_found_uses_error_body(client):
    response = client.get(f"{API}/projects/9999")
    assert response.status_code == 404
    assert response.json() == {"error": "Project not found"}


def test_validation_errors(client):
    response = client.post(f"{API}/projects/", json={**PROJECT_IN, "target_platforms": ["myspace"]})
    assert response.status_code == 422
    assert response.json()["error"] == "Validation Error"


def test_project_crud_is_scoped_to_user(client):
    created = client.post(f"{API}/projects/", json=PROJECT_IN)
    assert created.status_code == 201
    project_id = created.json()["id"]
    assert created.json()["status"] == "draft"

    listed = client.get(f"{API}/projects/").json()
    assert [p["id"] for p in listed] == [project_id]

    other = client.get(f"{API}/projects/{project_id}", headers={"X-User-Id": OTHER_USER_ID})
    assert other.status_code == 404

    patched = client.patch(f"{API}/projects/{project_id}", json={"strategy": STRATEGY})
    assert patched.json()["strategy"] == STRATEGY
    versions = client.get(f"{API}/projects/{project_id}/versions").json()
    assert versions[0]["change_description"] == "Strategy edited"

    assert client.delete(f"{API}/projects/{project_id}").status_code == 204
    assert client.get(f"{API}/projects/{project_id}").status_code == 404


def test_project_from_template_gets_scenes(client):
    template = client.post(f"{API}/templates/", json={
        "name": "Three beat",
        "category": "product_launch",
        "scene_structure": [{"title": "Hook", "duration_seconds": 3}, {"title": "CTA"}],
    })
    assert template.status_code == 201, template.text

    created = client.post(f"{API}/projects/", json={**PROJECT_IN, "template_id": template.json()["id"]})
    scenes = client.get(f"{API}/scenes/project/{created.json()['id']}").json()
    assert [s["title"] for s in scenes] == ["Hook", "CTA"]
    assert [s["duration_seconds"] for s in scenes] == [4, 8]
    assert [s["description"] for s in scenes] == ["Hook", "CTA"]


def test_ab_variants(client, db, project):
    assert client.post(f"{API}/projects/{project.id}/ab-variants", json={}).status_code == 400

    project.strategy = {"version_a": {"hook": "feel"}, "version_b": {"hook": "specs"}}
    db.commit()
    response = client.post(f"{API}/projects/{project.id}/ab-variants", json={})
    assert response.status_code == 201
    variants = response.json()
    assert [v["version_type"] for v in variants] == ["emotional", "technical"]
    assert variants[1]["strategy"] == {"hook": "specs"}
    assert all(v["parent_project_id"] == project.id and v["is_ab_variant"] for v in variants)


def test_strategy_endpoint(client, fake_llm, project):
    fake_llm.queue(STRATEGY)
    response = client.post(f"{API}/ai/strategy", json={"project_id": project.id})
    assert response.status_code == 200
    assert response.json() == {"strategy": STRATEGY, "cached": False}


def test_bad_ai_reply_is_502(client, fake_llm, project):
    fake_llm.queue("not json at all")
    response = client.post(f"{API}/ai/strategy", json={"project_id": project.id})
    assert response.status_code == 502
    assert "error" in response.json()


def test_scenes_without_strategy_is_400(client, project):
    response = client.post(f"{API}/ai/scenes", json={"project_id": project.id})
    assert response.status_code == 400
    assert response.json() == {"error": "Generate a strategy before creating scenes"}


def test_generate_video(client, project, scenes, video_service):
    generation = _generate(client, project, scenes[1])
    assert generation["status"] == "processing"
    assert generation["config"]["duration_seconds"] == 6
    assert video_service.submitted[0]["prompt"] == "Optimized prompt 2"

    current = client.get(f"{API}/projects/{project.id}").json()
    assert current["status"] == "generating"
    assert current["current_step"] == 5


def test_submission_failure_is_502_and_row_failed(client, project, scenes, video_service):
    video_service.fail_submit = RuntimeError("quota exhausted")
    response = client.post(f"{API}/generate/video", json={"project_id": project.id, "scene_id": scenes[0].id})
    assert response.status_code == 502

    rows = client.get(f"{API}/generate/project/{project.id}").json()
    assert rows[0]["status"] == "failed"
    assert "quota exhausted" in rows[0]["error_message"]


def test_scene_from_another_project_is_rejected(client, db, project, scenes):
    other = models.Project(user_id=USER_ID, title="b", product_name="b", target_platforms=["tiktok"],
                           languages=["en"], style="s", tone="t")
    db.add(other)
    db.commit()
    response = client.post(f"{API}/generate/video", json={"project_id": other.id, "scene_id": scenes[0].id})
    assert response.status_code == 404


def test_status_completes_and_notifies(client, project, scenes, video_service, storage):
    generation = _generate(client, project, scenes[0])
    pending = client.get(f"{API}/generate/video/status", params={"generation_id": generation["id"]}).json()
    assert pending["status"] == "processing"
    assert pending["max_retries"] == 3

    done = _complete(client, video_service, generation)
    assert done["output_url"].startswith("https://storage.test/")

    notifications = client.get(f"{API}/notifications/").json()
    assert notifications[0]["type"] == "generation_complete"
    assert notifications[0]["reference_id"] == str(generation["id"])


def test_status_warning_on_transient_error(client, project, scenes, video_service):
    generation = _generate(client, project, scenes[0])
    video_service.poll_error = RuntimeError("503 unavailable")
    body = client.get(f"{API}/generate/video/status", params={"generation_id": generation["id"]}).json()
    assert body["status"] == "processing"
    assert body["retry_count"] == 1
    assert body["warning"].startswith("Transient error (attempt 1/3)")


def test_retry_only_failed(client, project, scenes, video_service):
    generation = _generate(client, project, scenes[0])
    response = client.post(f"{API}/generate/video/retry", json={"generation_id": generation["id"]})
    assert response.status_code == 400

    video_service.finish(generation["operation_name"], error="Invalid argument")
    client.get(f"{API}/generate/video/status", params={"generation_id": generation["id"]})

    retried = client.post(f"{API}/generate/video/retry", json={"generation_id": generation["id"]}).json()
    assert retried["status"] == "processing"
    assert retried["retry_count"] == 0
    assert retried["operation_name"] != generation["operation_name"]


def test_extend_requires_completed_source(client, project, scenes, video_service):
    generation = _generate(client, project, scenes[0])
    body = {"source_generation_id": generation["id"], "prompt": "keep walking"}
    assert client.post(f"{API}/generate/video/extend", json=body).status_code == 400

    _complete(client, video_service, generation)
    extended = client.post(f"{API}/generate/video/extend", json=body)
    assert extended.status_code == 201
    assert video_service.submitted[-1]["source_video_uri"] == "gs://veo-out/sample_0.mp4"


def test_batch_counts_failures(client, project, scenes, video_service):
    response = client.post(f"{API}/generate/batch", json={"project_id": project.id, "languages": ["en"]})
    body = response.json()
    assert body["total"] == 6
    assert body["submitted"] == 6
    assert body["failed"] == 0
    ratios = {g["platform"]: g["aspect_ratio"] for g in body["generations"]}
    assert ratios == {"instagram_reels": "9:16", "youtube": "16:9"}


def test_image_and_voiceover(client, project, scenes, storage):
    image = client.post(f"{API}/generate/image", json={"project_id": project.id, "prompt": "thumbnail"})
    assert image.status_code == 201
    assert image.json()["type"] == "image"
    assert image.json()["status"] == "completed"

    voice = client.post(f"{API}/generate/voiceover", json={
        "project_id": project.id, "scene_id": scenes[0].id, "text": "Hallo", "language": "de",
    })
    assert voice.status_code == 201
    assert voice.json()["output_url"].endswith(f"/voiceovers/{scenes[0].id}_de.wav")


def test_budget_exhausted_is_429(client, db, project, scenes):
    db.add(models.UsageLog(user_id=USER_ID, api_service="veo", model="veo", operation="video",
                           estimated_cost_usd=500.0))
    db.commit()
    response = client.post(f"{API}/generate/video", json={"project_id": project.id, "scene_id": scenes[0].id})
    assert response.status_code == 429
    assert "budget" in response.json()["error"]

    budget = client.get(f"{API}/analytics/budget").json()
    assert budget["allowed"] is False
    assert budget["percent_used"] == 100.0


def test_rate_limit_is_429_with_retry_after(client, db, project):
    db.add(models.RateLimitBucket(user_id=USER_ID, category="ai-gemini", tokens=0.0, last_refill=datetime.utcnow()))
    db.commit()
    response = client.post(f"{API}/ai/strategy", json={"project_id": project.id})
    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) > 0


def test_stitch_without_clips_is_400(client, project, scenes):
    response = client.post(f"{API}/process/stitch", json={"project_id": project.id})
    assert response.status_code == 400


def test_stitch_falls_back_without_ffmpeg(client, project, scenes, video_service):
    first = _complete(client, video_service, _generate(client, project, scenes[0]))
    _complete(client, video_service, _generate(client, project, scenes[1]))

    body = client.post(f"{API}/process/stitch", json={"project_id": project.id}).json()
    assert body["scenes_count"] == 2
    assert body["total_duration"] == 10.0
    assert body["status"] == "completed"

    stitched = client.get(f"{API}/generate/project/{project.id}", params={"type": "stitched"}).json()[0]
    assert stitched["output_url"] == first["output_url"]
    assert stitched["output_metadata"]["stitched"] is False
    assert client.get(f"{API}/projects/{project.id}").json()["current_step"] == 6


def test_export_packages(client, project):
    response = client.post(f"{API}/process/export", json={
        "project_id": project.id, "platforms": ["youtube", "tiktok"], "resolution": "4k",
    })
    packages = response.json()["export_packages"]
    assert packages[0]["width"] == 3840
    assert packages[1]["aspect_ratio"] == "9:16"

    bad = client.post(f"{API}/process/export", json={"project_id": project.id, "platforms": ["fax"]})
    assert bad.status_code == 400


def test_watermark_needs_brand_watermark(client, project, scenes, video_service):
    generation = _complete(client, video_service, _generate(client, project, scenes[0]))
    response = client.post(f"{API}/process/watermark", json={
        "project_id": project.id, "generation_id": generation["generation_id"],
    })
    assert response.status_code == 400


def test_watermark_recorded_when_ffmpeg_missing(client, db, project, scenes, video_service):
    kit = client.post(f"{API}/brand/kits", json={
        "name": "Main", "watermark_url": "https://storage.test/wm.png", "watermark_opacity": 0.5,
    }).json()
    client.patch(f"{API}/projects/{project.id}", json={"brand_kit_id": kit["id"]})
    generation = _complete(client, video_service, _generate(client, project, scenes[0]))

    body = client.post(f"{API}/process/watermark", json={
        "project_id": project.id, "generation_id": generation["generation_id"],
    }).json()
    watermark = body["output_metadata"]["watermark"]
    assert watermark["position"] == "bottom-right"
    assert watermark["opacity"] == 0.5
    assert watermark["applied"] is False


def test_brand_asset_upload_extracts_palette(client, storage):
    kit = client.post(f"{API}/brand/kits", json={"name": "Main", "is_default": True}).json()
    buffer = io.BytesIO()
    Image.new("RGB", (32, 32), (255, 0, 0)).save(buffer, format="PNG")

    response = client.post(
        f"{API}/brand/assets",
        data={"type": "logo", "brand_kit_id": str(kit["id"])},
        files={"file": ("logo.png", buffer.getvalue(), "image/png")},
    )
    assert response.status_code == 201, response.text
    assert response.json()["palette"][0] == "#FF0000"
    assert client.get(f"{API}/brand/kits/{kit['id']}").json()["logo_url"] == response.json()["file_url"]

    bad = client.post(f"{API}/brand/assets", data={"type": "poster"},
                      files={"file": ("x.png", b"x", "image/png")})
    assert bad.status_code == 400


def test_ads_publish_pause_and_sync(client, project):
    campaign = client.post(f"{API}/campaigns/", json={"name": "Q3"}).json()
    published = client.post(f"{API}/ads/publish", json={
        "platform": "meta",
        "campaign_name": "Q3 reels",
        "project_id": project.id,
        "campaign_id": campaign["id"],
        "budget_daily_usd": 10,
        "creative_urls": ["https://storage.test/final.mp4"],
    })
    assert published.status_code == 201
    deployment = published.json()["deployment"]
    assert deployment["external_campaign_id"].startswith("meta_camp_")
    assert deployment["budget_total_usd"] == 300
    assert published.json()["publish_result"]["status"] == "pending_review"

    paused = client.post(f"{API}/ads/{deployment['id']}/pause").json()
    assert paused["status"] == "paused"
    assert client.post(f"{API}/ads/{deployment['id']}/pause").status_code == 400

    too_long = client.post(f"{API}/ads/sync-performance", json={
        "deployment_id": deployment["id"], "date_from": "2024-01-01", "date_to": "2024-06-01",
    })
    assert too_long.status_code == 400

    rows = client.post(f"{API}/ads/sync-performance", json={
        "deployment_id": deployment["id"], "date_from": "2024-01-01", "date_to": "2024-01-03",
    }).json()
    assert len(rows) == 3

    performance = client.get(f"{API}/campaigns/{campaign['id']}/performance").json()
    assert len(performance["data"]) == 3
    assert performance["aggregated"]["total_impressions"] == sum(r["impressions"] for r in rows)


def test_publish_rejects_bad_targeting(client, project):
    response = client.post(f"{API}/ads/publish", json={
        "platform": "google",
        "campaign_name": "x",
        "project_id": project.id,
        "budget_daily_usd": 10,
        "creative_urls": ["u"],
        "targeting": {"age_range": [70, 20]},
    })
    assert response.status_code == 422


def test_api_keys_never_echo_values(client):
    saved = client.put(f"{API}/api-keys/", json={"platform": "meta_ads", "keys": {"app_id": "1", "app_secret": "s"}})
    assert saved.json() == {
        "platform": "meta_ads",
        "is_valid": False,
        "last_validated_at": saved.json()["last_validated_at"],
        "fields": ["app_id", "app_secret"],
    }

    listed = client.get(f"{API}/api-keys/").json()
    assert [k["platform"] for k in listed] == ["meta_ads"]
    assert client.delete(f"{API}/api-keys/meta_ads").status_code == 204
    assert client.delete(f"{API}/api-keys/meta_ads").status_code == 404


def test_notifications_read_flow(client, project, scenes, video_service):
    _complete(client, video_service, _generate(client, project, scenes[0]))
    _complete(client, video_service, _generate(client, project, scenes[1]))

    first = client.get(f"{API}/notifications/").json()[0]
    assert client.post(f"{API}/notifications/{first['id']}/read").json()["is_read"] is True
    assert client.post(f"{API}/notifications/read-all").json() == {"updated": 1}
    assert client.get(f"{API}/notifications/", params={"unread_only": True}).json() == []


def test_usage_and_stats(client, project, scenes, video_service):
    _complete(client, video_service, _generate(client, project, scenes[2]))

    usage = client.get(f"{API}/analytics/usage").json()
    assert usage["by_service"] == {"veo": 3.2}
    assert usage["generation_counts"] == {"video": 1}

    stats = client.get(f"{API}/analytics/stats").json()
    assert stats["total_projects"] == 1
    assert stats["completed_generations"] == 1
    assert stats["recent_project_ids"] == [project.id]


def test_calendar_events(client, project):
    scheduled = (datetime.utcnow() + timedelta(days=1)).date().isoformat()
    created = client.post(f"{API}/calendar/", json={"title": "Launch", "project_id": project.id, "scheduled_date": scheduled})
    assert created.status_code == 201, created.text
    assert len(client.get(f"{API}/calendar/").json()) == 1


def test_current_step_must_be_a_workflow_step(client, project):
    response = client.patch(f"{API}/projects/{project.id}", json={"current_step": 7})
    assert response.status_code == 422
    assert client.patch(f"{API}/projects/{project.id}", json={"current_step": 3}).json()["current_step"] == 3


def test_reorder_scenes(client, project, scenes):
    order = [scenes[2].id, scenes[0].id, scenes[1].id]
    response = client.post(f"{API}/scenes/project/{project.id}/reorder", json={"scene_ids": order})
    assert response.status_code == 200
    assert [s["scene_number"] for s in response.json()] == [1, 2, 3]

    listed = client.get(f"{API}/scenes/project/{project.id}").json()
    assert [s["id"] for s in listed] == order

    partial = client.post(f"{API}/scenes/project/{project.id}/reorder", json={"scene_ids": order[:2]})
    assert partial.status_code == 400


def test_approve_prompt(client, db, project, scenes):
    approved = client.post(f"{API}/scenes/{scenes[0].id}/approve")
    assert approved.json()["prompt_approved"] is True

    edited = client.patch(f"{API}/scenes/{scenes[0].id}", json={"optimized_prompt": "hand edited"})
    assert edited.json()["prompt_approved"] is False

    scenes[1].optimized_prompt = None
    db.commit()
    assert client.post(f"{API}/scenes/{scenes[1].id}/approve").status_code == 400


def test_only_one_default_brand_kit(client):
    first = client.post(f"{API}/brand/kits", json={"name": "First", "is_default": True}).json()
    second = client.post(f"{API}/brand/kits", json={"name": "Second", "is_default": True}).json()

    defaults = [k["id"] for k in client.get(f"{API}/brand/kits").json() if k["is_default"]]
    assert defaults == [second["id"]]

    client.patch(f"{API}/brand/kits/{first['id']}", json={"is_default": True})
    defaults = [k["id"] for k in client.get(f"{API}/brand/kits").json() if k["is_default"]]
    assert defaults == [first["id"]]


def test_restore_strategy_version(client, project):
    client.patch(f"{API}/projects/{project.id}", json={"strategy": {"hook": "first"}})
    client.patch(f"{API}/projects/{project.id}", json={"strategy": {"hook": "second"}, "strategy_approved": True})
    first = next(v for v in client.get(f"{API}/projects/{project.id}/versions").json()
                 if v["snapshot"] == {"hook": "first"})

    restored = client.post(f"{API}/projects/{project.id}/versions/{first['id']}/restore").json()
    assert restored["strategy"] == {"hook": "first"}
    assert restored["strategy_approved"] is False

    versions = client.get(f"{API}/projects/{project.id}/versions", params={"step": "strategy"}).json()
    assert versions[0]["change_description"] == "Restored version 1"


def test_restore_scenes_version_keeps_format_and_audio(client, db, project, scenes, fake_llm):
    project.strategy = STRATEGY
    project.target_platforms = ["youtube"]
    db.commit()
    fake_llm.queue(
        {"scenes": [{"title": "Talking head", "description": "Founder speaks", "audio_type": "tts_voiceover",
                     "voiceover_text": "Hi there"}]},
        {"scenes": [{"title": "Replacement", "description": "Something else"}]},
    )
    client.post(f"{API}/ai/scenes", json={"project_id": project.id})
    client.post(f"{API}/ai/scenes", json={"project_id": project.id})
    first = next(v for v in client.get(f"{API}/projects/{project.id}/versions", params={"step": "scenes"}).json()
                 if v["version_number"] == 1)

    response = client.post(f"{API}/projects/{project.id}/versions/{first['id']}/restore")
    assert response.status_code == 200

    restored = client.get(f"{API}/scenes/project/{project.id}").json()
    assert [(s["title"], s["aspect_ratio"], s["audio_type"]) for s in restored] == [
        ("Talking head", "16:9", "tts_voiceover"),
    ]
    assert restored[0]["voiceover_text"] == "Hi there"


def test_restore_prompts_version(client, project, scenes, fake_llm):
    fake_llm.queue({"optimized_prompt": "first take"}, {"optimized_prompt": "second take"})
    client.post(f"{API}/ai/optimize-prompt", json={"project_id": project.id, "scene_id": scenes[0].id})
    client.post(f"{API}/ai/optimize-prompt", json={"project_id": project.id, "scene_id": scenes[0].id})
    first = next(v for v in client.get(f"{API}/projects/{project.id}/versions", params={"step": "prompts"}).json()
                 if v["version_number"] == 1)

    assert client.post(f"{API}/projects/{project.id}/versions/{first['id']}/restore").status_code == 200
    assert client.get(f"{API}/scenes/{scenes[0].id}").json()["optimized_prompt"] == "first take"


def test_campaign_dates_must_be_ordered(client):
    bad = client.post(f"{API}/campaigns/", json={"name": "Q3", "start_date": "2024-07-10", "end_date": "2024-07-01"})
    assert bad.status_code == 400
    assert bad.json() == {"error": "end_date must not be before start_date"}

    campaign = client.post(f"{API}/campaigns/", json={"name": "Q3", "start_date": "2024-07-01"}).json()
    response = client.patch(f"{API}/campaigns/{campaign['id']}", json={"end_date": "2024-06-01"})
    assert response.status_code == 400
    assert client.get(f"{API}/campaigns/{campaign['id']}").json()["end_date"] is None
