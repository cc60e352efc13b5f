from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.dependencies import (
    ai_guard,
    get_current_user_id,
    get_db,
    get_llm_client,
    get_owned_generation,
    get_owned_project,
    get_storage,
)
from app import schemas
from app.services import creative
from app.services.llm import LLMClient
from app.services.storage import BaseStorage

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/strategy", response_model=schemas.StrategyResponse, dependencies=[Depends(ai_guard("ai-gemini"))])
def generate_strategy(
    request: schemas.StrategyRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    llm: LLMClient = Depends(get_llm_client),
):
    project = get_owned_project(db, request.project_id, user_id)
    strategy, cached = creative.generate_strategy(db, project, llm, ab_test=request.ab_test)
    return {"strategy": strategy, "cached": cached}


@router.post("/scenes", response_model=list[schemas.Scene], dependencies=[Depends(ai_guard("ai-gemini"))])
def generate_scenes(
    request: schemas.ScenesRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    llm: LLMClient = Depends(get_llm_client),
):
    project = get_owned_project(db, request.project_id, user_id)
    return creative.generate_scenes(db, project, llm)


@router.post("/optimize-prompt", response_model=list[schemas.Scene], dependencies=[Depends(ai_guard("ai-gemini"))])
def optimize_prompt(
    request: schemas.OptimizePromptRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    llm: LLMClient = Depends(get_llm_client),
):
    project = get_owned_project(db, request.project_id, user_id)
    return creative.optimize_prompts(db, project, llm, scene_id=request.scene_id)


@router.post("/refine", response_model=schemas.RefineResponse, dependencies=[Depends(ai_guard("ai-gemini"))])
def refine(
    request: schemas.RefineRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    llm: LLMClient = Depends(get_llm_client),
):
    project = get_owned_project(db, request.project_id, user_id)
    return creative.refine_content(
        db, project, llm, request.content_type, request.current_content, request.refinement_request
    )


@router.post("/captions", response_model=schemas.CaptionResponse, dependencies=[Depends(ai_guard("ai-gemini"))])
def generate_captions(
    request: schemas.CaptionRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    llm: LLMClient = Depends(get_llm_client),
    storage: BaseStorage = Depends(get_storage),
):
    project = get_owned_project(db, request.project_id, user_id)
    generation = get_owned_generation(db, request.generation_id, user_id)
    if generation.project_id != project.id:
        raise HTTPException(status_code=404, detail="Generation not found")
    caption = creative.generate_captions(db, project, generation, request.language, llm, storage)
    return {
        "caption_id": caption.id,
        "srt_content": caption.srt_content,
        "srt_url": caption.srt_url,
        "language": caption.language,
    }


@router.get("/insights", response_model=schemas.InsightsResponse)
def insights(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    llm: LLMClient = Depends(get_llm_client),
):
    items, cached = creative.generate_insights(db, user_id, llm)
    return {"insights": items, "cached": cached}
