from typing import Optional, List, Any, Dict

from pydantic import BaseModel, Field


class StrategyRequest(BaseModel):
    project_id: int
    ab_test: bool = False


class StrategyResponse(BaseModel):
    strategy: Dict[str, Any]
    cached: bool = False


class ScenesRequest(BaseModel):
    project_id: int


class OptimizePromptRequest(BaseModel):
    project_id: int
    # all scenes when omitted
    scene_id: Optional[int] = None


class RefineRequest(BaseModel):
    project_id: int
    content_type: str = Field(..., pattern="^(strategy|scenes)$")
    current_content: Any
    refinement_request: str = Field(..., min_length=1, max_length=2000)


class RefineResponse(BaseModel):
    updated_content: Any
    explanation: str = ""


class CaptionRequest(BaseModel):
    project_id: int
    generation_id: int
    language: str = Field(..., min_length=2, max_length=5)


class CaptionResponse(BaseModel):
    caption_id: int
    srt_content: str
    srt_url: Optional[str] = None
    language: str


class Insight(BaseModel):
    type: str  # success | trend | warning | info
    message: str


class InsightsResponse(BaseModel):
    insights: List[Insight]
    cached: bool = False
