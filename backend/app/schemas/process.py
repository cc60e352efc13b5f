from typing import Optional, List

from pydantic import BaseModel, Field


class StitchRequest(BaseModel):
    project_id: int
    language: Optional[str] = None
    platform: Optional[str] = None


class StitchResponse(BaseModel):
    generation_id: int
    scenes_count: int
    total_duration: float
    video_urls: List[str]
    status: str


class ExportRequest(BaseModel):
    project_id: int
    platforms: List[str] = Field(..., min_length=1)
    include_caption: bool = False
    include_watermark: bool = False
    resolution: Optional[str] = None


class ExportVideo(BaseModel):
    generation_id: int
    type: str
    output_url: Optional[str] = None
    language: Optional[str] = None


class ExportPackage(BaseModel):
    platform: str
    platform_label: str
    aspect_ratio: str
    resolution: str
    width: int
    height: int
    include_caption: bool
    include_watermark: bool
    videos: List[ExportVideo]
    video_count: int


class ExportResponse(BaseModel):
    project_id: int
    export_packages: List[ExportPackage]
    total_platforms: int
    total_videos: int


class WatermarkRequest(BaseModel):
    project_id: int
    generation_id: int
    position: Optional[str] = None
    opacity: Optional[float] = Field(None, ge=0, le=1)


class CaptionEmbedRequest(BaseModel):
    caption_id: int
