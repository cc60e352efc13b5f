from datetime import datetime
from typing import Optional, List, Any, Dict

from pydantic import BaseModel, Field, field_validator

from app.core.constants import PHONE_TEMPLATES
from app.models.generation import GenerationType, GenerationStatus


class Generation(BaseModel):
    id: int
    project_id: int
    scene_id: Optional[int] = None
    type: GenerationType
    prompt: Optional[str] = None
    model: str
    config: Optional[Dict[str, Any]] = None
    language: Optional[str] = None
    platform: Optional[str] = None
    aspect_ratio: Optional[str] = None
    operation_name: Optional[str] = None
    status: GenerationStatus
    output_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    output_metadata: Optional[Dict[str, Any]] = None
    estimated_cost_usd: Optional[float] = None
    actual_cost_usd: Optional[float] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class VideoGenerateRequest(BaseModel):
    project_id: int
    scene_id: int
    language: Optional[str] = None
    platform: Optional[str] = None
    aspect_ratio: Optional[str] = None
    use_fast_model: bool = False


class BatchGenerateRequest(BaseModel):
    project_id: int
    scene_ids: Optional[List[int]] = None
    languages: Optional[List[str]] = None
    platforms: Optional[List[str]] = None
    use_fast_model: bool = False


class BatchGenerateResponse(BaseModel):
    total: int
    submitted: int
    failed: int
    generations: List[Generation]


class GenerationStatusResponse(BaseModel):
    generation_id: int
    status: GenerationStatus
    output_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    max_retries: int
    warning: Optional[str] = None


class RetryRequest(BaseModel):
    generation_id: int


class ExtendRequest(BaseModel):
    source_generation_id: int
    prompt: str = Field(..., min_length=1, max_length=5000)
    duration_seconds: Optional[int] = None


class ImageGenerateRequest(BaseModel):
    project_id: int
    prompt: str = Field(..., min_length=1, max_length=5000)
    aspect_ratio: Optional[str] = None
    use_fast_model: bool = False
    purpose: str = "thumbnail"


class MockupRequest(BaseModel):
    screenshot_url: str = Field(..., min_length=1, max_length=2048)
    template_id: str
    aspect_ratio: str = Field("9:16", pattern=r"^(9:16|16:9|1:1)$")
    background_color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    scene_id: Optional[int] = None

    @field_validator("template_id")
    @classmethod
    def known_template(cls, value: str) -> str:
        if value not in PHONE_TEMPLATES:
            raise ValueError(f"Unknown phone template: {value}")
        return value


class MockupResponse(BaseModel):
    mockup_url: str
    width: int
    height: int


class VoiceoverRequest(BaseModel):
    project_id: int
    scene_id: Optional[int] = None
    text: str = Field(..., min_length=1, max_length=5000)
    language: str = Field(..., min_length=2, max_length=5)
    voice_name: Optional[str] = None


class Caption(BaseModel):
    id: int
    generation_id: int
    language: str
    srt_content: str
    srt_url: Optional[str] = None
    is_embedded: bool = False
    created_at: datetime

    class Config:
        from_attributes = True
