from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.scene import AudioType


class SceneBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    duration_seconds: int = Field(8, ge=4, le=8)
    aspect_ratio: str = "9:16"
    resolution: str = "1080p"
    camera_movement: Optional[str] = None
    lighting: Optional[str] = None
    text_overlay: Optional[str] = None
    audio_type: AudioType = AudioType.native_veo
    voiceover_text: Optional[str] = None
    voiceover_language: Optional[str] = None
    voiceover_voice: Optional[str] = None
    reference_image_urls: Optional[List[str]] = None


class SceneCreate(SceneBase):
    project_id: int
    description: str = Field(..., min_length=1)
    scene_number: Optional[int] = None
    user_prompt: Optional[str] = None


class SceneUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    duration_seconds: Optional[int] = Field(None, ge=4, le=8)
    aspect_ratio: Optional[str] = None
    resolution: Optional[str] = None
    user_prompt: Optional[str] = None
    optimized_prompt: Optional[str] = None
    negative_prompt: Optional[str] = None
    prompt_approved: Optional[bool] = None
    camera_movement: Optional[str] = None
    lighting: Optional[str] = None
    text_overlay: Optional[str] = None
    audio_type: Optional[AudioType] = None
    voiceover_text: Optional[str] = None
    voiceover_language: Optional[str] = None
    voiceover_voice: Optional[str] = None
    reference_image_urls: Optional[List[str]] = None


class SceneReorder(BaseModel):
    scene_ids: List[int] = Field(..., min_length=1)


class Scene(SceneBase):
    id: int
    project_id: int
    scene_number: int
    user_prompt: Optional[str] = None
    optimized_prompt: Optional[str] = None
    negative_prompt: Optional[str] = None
    prompt_approved: bool = False
    phone_mockup_config: Optional[Dict[str, Any]] = None
    mockup_image_url: Optional[str] = None
    sort_order: int
    created_at: datetime

    class Config:
        from_attributes = True
