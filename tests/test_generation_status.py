from datetime import datetime, timedelta

import pytest

from app import models
from app.services import generation as generation_service
from app.services.generation_status import classify_error, poll_generation, poll_until_complete
from app.services.polling import PollingBackoff


@pytest.fixture()
def generation(db, project, scenes, video_service):
    return generation_service.start_video_generation(db, project, scenes[0], video_service)


def _notifications(db, type_):
    return db.query(models.Notification).filter(models.Notification.type == type_).all()


@pytest.mark.parametrize("message,kind", [
    ("Invalid argument: prompt", "permanent"),
    ("Model not found", "permanent"),
    ("403 Forbidden", "permanent"),
    ("Video blocked by safety filter: people", "permanent"),
    ("503 Service Unavailable", "transient"),
    ("Connection reset by peer", "transient"),
])
def test_classify_error(message, kind):
    assert classify_error(message) == kind


def test_submission_marks_row_processing(generation, video_service):
    assert generation.status == models.GenerationStatus.processing
    assert generation.operation_name == video_service.submitted[0]["name"]
    assert generation.started_at is not None
    assert generation.project.status == models.ProjectStatus.generating
    assert generation.project.current_step == 5


def test_pending_operation_leaves_row_processing(db, generation, video_service, storage):
    result = poll_generation(db, generation, video_service, storage)
    assert result.generation.status == models.GenerationStatus.processing
    assert result.warning is None
    assert result.generation.retry_count == 0


def test_completed_operation_uploads_and_completes(db, generation, video_service, storage):
    video_service.finish(generation.operation_name, video_uri="gs://veo-out/abc/sample_0.mp4")

    result = poll_generation(db, generation, video_service, storage)

    gen = result.generation
    path = f"{gen.project_id}/scenes/{gen.scene_id}/{gen.id}.mp4"
    assert gen.status == models.GenerationStatus.completed
    assert gen.output_url == f"https://storage.test/{path}"
    assert storage.objects[path] == b"mp4-bytes"
    assert gen.output_metadata["source_uri"] == "gs://veo-out/abc/sample_0.mp4"
    assert gen.completed_at is not None
    assert gen.actual_cost_usd == pytest.approx(4 * 0.40)

    usage = db.query(models.UsageLog).one()
    assert usage.api_service == "veo"
    assert usage.duration_seconds == 4
    assert usage.generation_id == gen.id
    assert len(_notifications(db, models.NotificationType.generation_complete)) == 1


def test_inline_video_bytes_are_stored(db, generation, video_service, storage):
    video_service.finish(generation.operation_name, video_uri=None, video_bytes=b"inline")
    result = poll_generation(db, generation, video_service, storage)
    assert result.generation.status == models.GenerationStatus.completed
    assert b"inline" in storage.objects.values()
    assert "source_uri" not in result.generation.output_metadata


def test_transient_errors_fail_after_three_attempts(db, generation, video_service, storage):
    video_service.poll_error = RuntimeError("503 Service Unavailable")

    first = poll_generation(db, generation, video_service, storage)
    assert first.generation.status == models.GenerationStatus.processing
    assert first.generation.retry_count == 1
    assert first.warning.startswith("Transient error (attempt 1/3)")

    second = poll_generation(db, generation, video_service, storage)
    assert second.generation.retry_count == 2

    third = poll_generation(db, generation, video_service, storage)
    assert third.generation.status == models.GenerationStatus.failed
    assert third.generation.retry_count == 3
    assert "Failed after 3 attempts" in third.generation.error_message
    assert len(_notifications(db, models.NotificationType.generation_failed)) == 1


def test_permanent_remote_error_fails_immediately(db, generation, video_service, storage):
    video_service.finish(generation.operation_name, error="Video blocked by safety filter: minors")
    result = poll_generation(db, generation, video_service, storage)
    assert result.generation.status == models.GenerationStatus.failed
    assert result.generation.retry_count == 0
    assert result.generation.error_message == "Video blocked by safety filter: minors"


def test_done_without_video_fails(db, generation, video_service, storage):
    video_service.finish(generation.operation_name, video_uri=None)
    result = poll_generation(db, generation, video_service, storage)
    assert result.generation.status == models.GenerationStatus.failed
    assert result.generation.error_message == "No video generated"


def test_failed_upload_is_retried_without_polling_again(db, generation, video_service, storage):
    video_service.finish(generation.operation_name, video_uri="gs://veo-out/xyz.mp4")
    storage.fail_uploads = 1

    first = poll_generation(db, generation, video_service, storage)
    assert first.generation.status == models.GenerationStatus.processing
    assert first.generation.retry_count == 1
    assert first.generation.output_metadata["veo_video_uri"] == "gs://veo-out/xyz.mp4"

    video_service.poll_error = AssertionError("operation must not be queried again")
    second = poll_generation(db, generation, video_service, storage)
    assert second.generation.status == models.GenerationStatus.completed
    assert "veo_video_uri" not in second.generation.output_metadata
    assert second.generation.output_metadata["source_uri"] == "gs://veo-out/xyz.mp4"


def test_generation_times_out_after_fifteen_minutes(db, generation, video_service, storage):
    generation.started_at = datetime.utcnow() - timedelta(minutes=16)
    db.commit()
    result = poll_generation(db, generation, video_service, storage)
    assert result.generation.status == models.GenerationStatus.failed
    assert result.generation.error_message == "Generation timed out after 15 minutes"


def test_terminal_rows_are_returned_untouched(db, generation, video_service, storage):
    video_service.finish(generation.operation_name)
    poll_generation(db, generation, video_service, storage)
    video_service.poll_error = AssertionError("terminal rows are not polled")

    result = poll_generation(db, generation, video_service, storage)
    assert result.generation.status == models.GenerationStatus.completed
    assert db.query(models.UsageLog).count() == 1


def test_poll_until_complete_backs_off_and_resets(db, generation, video_service, storage):
    calls = {"n": 0}
    real_get = video_service.get_operation

    def flaky(name, model=None):
        calls["n"] += 1
        if calls["n"] <= 2:
            raise RuntimeError("deadline exceeded")
        if calls["n"] == 4:
            video_service.finish(name)
        return real_get(name, model)

    video_service.get_operation = flaky
    sleeps = []

    gen = poll_until_complete(
        db, generation.id, video_service, storage,
        backoff=PollingBackoff(base=10, ceiling=60), sleep=sleeps.append,
    )

    assert gen.status == models.GenerationStatus.completed
    assert sleeps == [20, 40, 10]


def test_storage_errors_are_retried_even_when_they_read_as_permanent(db, generation, video_service, storage):
    video_service.finish(generation.operation_name, video_uri="gs://veo-out/gone.mp4")
    video_service.download_error = IOError("404 Client Error: Not Found for url")

    result = poll_generation(db, generation, video_service, storage)

    assert result.generation.status == models.GenerationStatus.processing
    assert result.generation.retry_count == 1
    assert result.generation.output_metadata["veo_video_uri"] == "gs://veo-out/gone.mp4"
    assert result.warning.startswith("Transient error (attempt 1/3): Failed to store video")


def test_poll_until_complete_gives_up_after_max_polls(db, generation, video_service, storage):
    sleeps = []
    gen = poll_until_complete(
        db, generation.id, video_service, storage,
        backoff=PollingBackoff(base=10, ceiling=60), sleep=sleeps.append, max_polls=3,
    )
    assert gen.status == models.GenerationStatus.processing
    assert sleeps == [10, 10]


def test_poll_until_complete_unknown_generation(db, video_service, storage):
    assert poll_until_complete(db, 999, video_service, storage, sleep=lambda _: None) is None
