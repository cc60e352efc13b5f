import os
import uuid

from fastapi import UploadFile

from app.core.config import settings

MEDIA_ROOT = settings.MEDIA_ROOT


def media_path(relative_path: str) -> str:
    path = os.path.join(MEDIA_ROOT, relative_path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return path


def save_bytes(relative_path: str, data: bytes) -> str:
    path = media_path(relative_path)
    with open(path, "wb") as f:
        f.write(data)
    return path


def read_upload(file: UploadFile) -> bytes:
    return file.file.read()


def brand_asset_path(user_id: str, filename: str) -> str:
    ext = os.path.splitext(filename or "")[1] or ".bin"
    return f"brand/{user_id}/{uuid.uuid4().hex}{ext}"
