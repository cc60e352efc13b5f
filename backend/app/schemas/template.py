from datetime import datetime
from typing import Optional, List, Any, Dict

from pydantic import BaseModel, Field

from app.models.template import TemplateCategory


class TemplateBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: TemplateCategory
    scene_structure: List[Dict[str, Any]] = []
    default_style: Optional[str] = None
    default_tone: Optional[str] = None
    platforms: List[str] = []
    is_public: bool = False


class TemplateCreate(TemplateBase):
    pass


class Template(TemplateBase):
    id: int
    user_id: Optional[str] = None
    usage_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True
