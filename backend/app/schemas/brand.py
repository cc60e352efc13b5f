from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator

from app.core.constants import WATERMARK_POSITIONS

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class BrandColors(BaseModel):
    primary: str = Field(..., pattern=HEX_COLOR)
    secondary: str = Field(..., pattern=HEX_COLOR)
    accent: str = Field(..., pattern=HEX_COLOR)
    background: Optional[str] = Field(None, pattern=HEX_COLOR)
    text: Optional[str] = Field(None, pattern=HEX_COLOR)


class BrandFonts(BaseModel):
    heading: str
    body: str
    caption: Optional[str] = None


class BrandKitBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    colors: Optional[BrandColors] = None
    fonts: Optional[BrandFonts] = None
    brand_voice: Optional[str] = None
    logo_url: Optional[str] = None
    watermark_url: Optional[str] = None
    watermark_position: str = "bottom-right"
    watermark_opacity: float = Field(0.3, ge=0, le=1)
    is_default: bool = False

    @field_validator("watermark_position")
    @classmethod
    def known_position(cls, value: str) -> str:
        if value not in WATERMARK_POSITIONS:
            raise ValueError(f"watermark_position must be one of {', '.join(WATERMARK_POSITIONS)}")
        return value


class BrandKitCreate(BrandKitBase):
    pass


class BrandKitUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    colors: Optional[BrandColors] = None
    fonts: Optional[BrandFonts] = None
    brand_voice: Optional[str] = None
    logo_url: Optional[str] = None
    watermark_url: Optional[str] = None
    watermark_position: Optional[str] = None
    watermark_opacity: Optional[float] = Field(None, ge=0, le=1)
    is_default: Optional[bool] = None

    @field_validator("watermark_position")
    @classmethod
    def known_position(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in WATERMARK_POSITIONS:
            raise ValueError(f"watermark_position must be one of {', '.join(WATERMARK_POSITIONS)}")
        return value


class BrandKit(BrandKitBase):
    id: int
    user_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class BrandAsset(BaseModel):
    id: int
    brand_kit_id: Optional[int] = None
    name: str
    type: str
    file_url: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    tags: List[str] = []
    palette: Optional[List[str]] = None
    created_at: datetime

    class Config:
        from_attributes = True
