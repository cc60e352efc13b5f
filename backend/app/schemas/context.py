import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.code_context import CodeContextSource

GITHUB_REPO_RE = re.compile(r"github\.com/([^/\s]+)/([^/\s#?]+)")


class ContextFetchRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    # when set, the project's source_url and context are filled in
    project_id: Optional[int] = None

    @field_validator("url")
    @classmethod
    def http_url(cls, value: str) -> str:
        value = value.strip()
        if not re.match(r"^https?://[^/\s]+", value):
            raise ValueError("Invalid URL format")
        return value


class SummarizedContext(BaseModel):
    company_name: str = ""
    product_description: str = ""
    target_audience: str = ""
    key_features: List[str] = []
    unique_selling_points: List[str] = []
    brand_tone: str = "professional"
    tech_stack: List[str] = []


class ContextFetchResponse(BaseModel):
    context: SummarizedContext


class CodeAnalysis(BaseModel):
    app_name: str = Field(..., min_length=1)
    app_type: str = Field(..., min_length=1)
    tech_stack: List[str] = []
    main_features: List[str] = []
    key_screens: List[str] = []
    ui_components: List[str] = []
    user_flows: List[str] = []
    marketing_angles: List[str] = []
    target_platforms: List[str] = []
    monetization: str = "unknown"


class CodeContextGithubRequest(BaseModel):
    repo_url: str = Field(..., max_length=1024)

    @field_validator("repo_url")
    @classmethod
    def github_repo(cls, value: str) -> str:
        if not value.startswith(("https://", "http://")) or not GITHUB_REPO_RE.search(value):
            raise ValueError("Must be a valid GitHub repository URL")
        return value


class CodeContextUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class CodeContext(BaseModel):
    id: int
    user_id: str
    name: str
    source_type: CodeContextSource
    repo_url: Optional[str] = None
    raw_file_url: Optional[str] = None
    analysis: CodeAnalysis
    file_tree: Optional[str] = None
    token_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True
