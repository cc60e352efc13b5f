import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["MEDIA_ROOT"] = tempfile.mkdtemp(prefix="mvs-media-")
os.environ["BACKGROUND_POLLING"] = "false"
os.environ["GOOGLE_CLOUD_PROJECT_ID"] = ""

import json
from itertools import count
from typing import Optional

import pytest
import requests
from fastapi.testclient import TestClient

from app import models
from app.api import dependencies as deps
from app.db import Base, SessionLocal, engine
from app.main import app
from app.services.ai_cache import ai_cache
from app.services.budget import invalidate_budget_cache
from app.services.code_context import GitHubRepoFetcher
from app.services.context import ContextScraper
from app.services.llm import LLMResult
from app.services.storage import BaseStorage
from app.services.video.base import BaseVideoService, VideoOperation

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


class FakeLLM:
    """Returns queued replies in order; dicts are serialized to JSON."""

    def __init__(self, *replies, configured: bool = True):
        self.replies = list(replies)
        self.calls = []
        self.configured = configured
        self.cached = False

    def queue(self, *replies):
        self.replies.extend(replies)

    def generate(self, *, system_prompt, user_prompt, model, temperature=0.7, max_tokens=2048,
                 json_output=True, use_cache=True):
        self.calls.append({"system_prompt": system_prompt, "user_prompt": user_prompt, "model": model,
                           "temperature": temperature})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        text = reply if isinstance(reply, str) else json.dumps(reply)
        if self.cached:
            return LLMResult(text=text, model=model, cached=True)
        return LLMResult(text=text, model=model, input_tokens=1000, output_tokens=500)


class FakeVideoService(BaseVideoService):
    def __init__(self):
        self.ids = count(1)
        self.submitted = []
        self.operations = {}
        self.fail_submit: Optional[Exception] = None
        self.poll_error: Optional[Exception] = None
        self.download_error: Optional[Exception] = None

    def start_generation(self, prompt, *, model, aspect_ratio="9:16", duration_seconds=8,
                         negative_prompt=None, resolution=None, source_video_uri=None):
        if self.fail_submit:
            raise self.fail_submit
        name = f"projects/p/locations/us-central1/publishers/google/models/{model}/operations/op-{next(self.ids)}"
        self.submitted.append({
            "name": name,
            "prompt": prompt,
            "model": model,
            "aspect_ratio": aspect_ratio,
            "duration_seconds": duration_seconds,
            "source_video_uri": source_video_uri,
        })
        self.operations[name] = VideoOperation(name=name, done=False)
        return name

    def finish(self, name, video_uri="gs://veo-out/sample_0.mp4", error=None, video_bytes=None):
        self.operations[name] = VideoOperation(
            name=name, done=True, video_uri=video_uri if not error else None, video_bytes=video_bytes, error=error
        )

    def get_operation(self, operation_name, model=None):
        if self.poll_error:
            raise self.poll_error
        return self.operations[operation_name]

    def download_video(self, uri):
        if self.download_error:
            raise self.download_error
        return b"mp4-bytes"


class FakeStorage(BaseStorage):
    def __init__(self):
        self.objects = {}
        self.fail_uploads = 0
        self.deleted = []

    def upload_bytes(self, path, data, content_type=None):
        if self.fail_uploads:
            self.fail_uploads -= 1
            raise IOError("storage unavailable")
        self.objects[path] = data
        return f"https://storage.test/{path}"

    def owns(self, url):
        return url.startswith("https://storage.test/")

    def delete(self, url):
        self.deleted.append(url)
        self.objects.pop(url.replace("https://storage.test/", ""), None)

    def download(self, url):
        return self.objects.get(url.replace("https://storage.test/", ""), b"")


def make_response(url, status=200, body=b"", headers=None):
    resp = requests.Response()
    resp.url = url
    resp.status_code = status
    resp.reason = "OK" if status < 400 else "Error"
    resp._content = body.encode() if isinstance(body, str) else body
    resp.headers.update(headers or {})
    return resp


class FakeHTTP:
    """requests.Session stand-in serving canned responses by URL; unknown URLs are 404."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, url, body=b"", status=200, headers=None):
        self.routes[url] = make_response(url, status, body, headers)

    def get(self, url, headers=None, timeout=None, allow_redirects=True):
        self.requests.append({"url": url, "headers": headers or {}, "allow_redirects": allow_redirects})
        response = self.routes.get(url)
        if isinstance(response, Exception):
            raise response
        return response if response is not None else make_response(url, 404, b"not found")


class FakeProcessor:
    def available(self):
        return False


class FakeImageService:
    def generate(self, prompt, *, model, aspect_ratio=None):
        return b"png-bytes"


class FakeTTSService:
    def synthesize(self, text, language, voice_name=None):
        return b"RIFF-wav"


@pytest.fixture()
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    ai_cache.clear()
    invalidate_budget_cache()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def fake_llm():
    return FakeLLM()


@pytest.fixture()
def video_service():
    return FakeVideoService()


@pytest.fixture()
def storage():
    return FakeStorage()


@pytest.fixture()
def http():
    return FakeHTTP()


@pytest.fixture()
def client(db, fake_llm, video_service, storage, http):
    def get_db_override():
        yield db

    app.dependency_overrides[deps.get_db] = get_db_override
    app.dependency_overrides[deps.get_llm_client] = lambda: fake_llm
    app.dependency_overrides[deps.get_video_service] = lambda: video_service
    app.dependency_overrides[deps.get_storage] = lambda: storage
    app.dependency_overrides[deps.get_video_processor] = FakeProcessor
    app.dependency_overrides[deps.get_image_service] = FakeImageService
    app.dependency_overrides[deps.get_tts_service] = FakeTTSService
    app.dependency_overrides[deps.get_scraper] = lambda: ContextScraper(session=http)
    app.dependency_overrides[deps.get_github_fetcher] = lambda: GitHubRepoFetcher(session=http)
    with TestClient(app, headers={"X-User-Id": USER_ID}) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def project(db):
    project = models.Project(
        user_id=USER_ID,
        title="Launch video",
        product_name="Eventful",
        product_description="Find events near you",
        target_platforms=["instagram_reels", "youtube"],
        languages=["en", "de"],
        style="modern",
        tone="energetic",
    )
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@pytest.fixture()
def scenes(db, project):
    items = []
    for i in range(3):
        scene = models.Scene(
            project_id=project.id,
            scene_number=i + 1,
            title=f"Scene {i + 1}",
            description=f"Shot {i + 1} of the app",
            duration_seconds=(4, 6, 8)[i],
            optimized_prompt=f"Optimized prompt {i + 1}",
            negative_prompt="blurry_text",
            sort_order=i,
        )
        db.add(scene)
        items.append(scene)
    db.commit()
    for scene in items:
        db.refresh(scene)
    return items
