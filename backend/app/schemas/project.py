from datetime import datetime
from typing import Optional, List, Any, Dict

from pydantic import BaseModel, Field, field_validator

from app.core.constants import PLATFORMS, WORKFLOW_STEPS
from app.models.project import ProjectStatus, VersionType


class ProjectBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    product_name: str = Field(..., min_length=1, max_length=255)
    product_description: Optional[str] = None
    target_platforms: List[str] = Field(..., min_length=1)
    target_audience: Optional[str] = None
    languages: List[str] = Field(..., min_length=1)
    style: str = Field(..., min_length=1)
    tone: str = Field(..., min_length=1)
    additional_notes: Optional[str] = None
    source_url: Optional[str] = None
    brand_kit_id: Optional[int] = None
    code_context_id: Optional[int] = None

    @field_validator("target_platforms")
    @classmethod
    def known_platforms(cls, value: List[str]) -> List[str]:
        unknown = [p for p in value if p not in PLATFORMS]
        if unknown:
            raise ValueError(f"Unknown platform(s): {', '.join(unknown)}")
        return value


class ProjectCreate(ProjectBase):
    template_id: Optional[int] = None


class ProjectUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    product_name: Optional[str] = None
    product_description: Optional[str] = None
    target_platforms: Optional[List[str]] = None
    target_audience: Optional[str] = None
    languages: Optional[List[str]] = None
    style: Optional[str] = None
    tone: Optional[str] = None
    additional_notes: Optional[str] = None
    source_url: Optional[str] = None
    brand_kit_id: Optional[int] = None
    code_context_id: Optional[int] = None
    strategy: Optional[Dict[str, Any]] = None
    strategy_approved: Optional[bool] = None
    status: Optional[ProjectStatus] = None
    current_step: Optional[int] = None

    @field_validator("current_step")
    @classmethod
    def known_step(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value not in WORKFLOW_STEPS:
            raise ValueError(f"current_step must be one of {sorted(WORKFLOW_STEPS)}")
        return value


class Project(ProjectBase):
    id: int
    user_id: str
    template_id: Optional[int] = None
    source_context: Optional[Dict[str, Any]] = None
    strategy: Optional[Dict[str, Any]] = None
    strategy_approved: bool = False
    status: ProjectStatus
    current_step: int
    is_ab_variant: bool = False
    parent_project_id: Optional[int] = None
    version_type: Optional[VersionType] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectVersion(BaseModel):
    id: int
    project_id: int
    step: str
    version_number: int
    snapshot: Any
    change_description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AbVariantCreate(BaseModel):
    """Split an A/B strategy into two child projects."""

    copy_scenes: bool = False
