"""Object storage for generated assets: GCS in deployment, MEDIA_ROOT locally."""
import logging
import os
from typing import Optional

import requests

from app.core.config import settings
from app.core import files

logger = logging.getLogger(__name__)


def guess_content_type(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    return {
        ".mp4": "video/mp4",
        ".png": "image/png",
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".wav": "audio/wav",
        ".srt": "text/plain",
    }.get(ext, "application/octet-stream")


class BaseStorage:
    def upload_bytes(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store data at path and return its public URL."""
        raise NotImplementedError

    def owns(self, url: str) -> bool:
        """True when url points at an object this storage wrote."""
        return False

    def delete(self, url: str) -> None:
        """Remove an object this storage wrote; other URLs are ignored."""
        raise NotImplementedError

    def download(self, url: str) -> bytes:
        if url.startswith("http://") or url.startswith("https://"):
            resp = requests.get(url, timeout=120)
            resp.raise_for_status()
            return resp.content
        with open(url, "rb") as f:
            return f.read()


class GCSStorage(BaseStorage):
    def __init__(self, bucket_name: str):
        from google.cloud import storage

        self.bucket_name = bucket_name
        self.client = storage.Client(project=settings.GOOGLE_CLOUD_PROJECT_ID or None)
        self.bucket = self.client.bucket(bucket_name)
        logger.info("GCS initialized with bucket: %s", bucket_name)

    def upload_bytes(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        blob = self.bucket.blob(path)
        blob.upload_from_string(data, content_type=content_type or guess_content_type(path))
        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return f"https://storage.googleapis.com/{self.bucket_name}/{path}"

    def owns(self, url: str) -> bool:
        return url.startswith(self.public_url("")) or url.startswith(f"gs://{self.bucket_name}/")

    def delete(self, url: str) -> None:
        if not self.owns(url):
            return
        prefix = self.public_url("") if url.startswith("https://") else f"gs://{self.bucket_name}/"
        blob = self.bucket.blob(url[len(prefix):])
        if blob.exists():
            blob.delete()

    def download(self, url: str) -> bytes:
        if url.startswith("gs://"):
            _, _, bucket, *parts = url.split("/")
            return self.client.bucket(bucket).blob("/".join(parts)).download_as_bytes()
        prefix = self.public_url("")
        if url.startswith(prefix):
            return self.bucket.blob(url[len(prefix):]).download_as_bytes()
        return super().download(url)


class LocalStorage(BaseStorage):
    def upload_bytes(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        files.save_bytes(path, data)
        return f"{settings.MEDIA_BASE_URL.rstrip('/')}/{path}"

    def owns(self, url: str) -> bool:
        prefix = settings.MEDIA_BASE_URL.rstrip("/") + "/"
        return url.startswith(prefix) and ".." not in url[len(prefix):].split("/")

    def delete(self, url: str) -> None:
        if not self.owns(url):
            return
        path = os.path.join(settings.MEDIA_ROOT, url[len(settings.MEDIA_BASE_URL.rstrip("/")) + 1:])
        if os.path.exists(path):
            os.remove(path)

    def download(self, url: str) -> bytes:
        prefix = settings.MEDIA_BASE_URL.rstrip("/") + "/"
        if url.startswith(prefix):
            url = files.media_path(url[len(prefix):])
        return super().download(url)


_storage: Optional[BaseStorage] = None


def get_storage() -> BaseStorage:
    global _storage
    if _storage is None:
        if settings.GCS_BUCKET_NAME:
            _storage = GCSStorage(settings.GCS_BUCKET_NAME)
        else:
            _storage = LocalStorage()
    return _storage
