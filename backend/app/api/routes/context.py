from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.dependencies import ai_guard, get_current_user_id, get_db, get_llm_client, get_owned_project, get_scraper
from app import schemas
from app.services.context import ContextScraper, apply_to_project, summarize_context
from app.services.llm import LLMClient

router = APIRouter(prefix="/context", tags=["context"])


@router.post("/fetch", response_model=schemas.ContextFetchResponse, dependencies=[Depends(ai_guard("ai-gemini"))])
def fetch_context(
    request: schemas.ContextFetchRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    scraper: ContextScraper = Depends(get_scraper),
    llm: LLMClient = Depends(get_llm_client),
):
    project = get_owned_project(db, request.project_id, user_id) if request.project_id is not None else None

    scraped = scraper.scrape(request.url)
    context = summarize_context(db, user_id, scraped, llm)
    if project is not None:
        apply_to_project(project, request.url, context)
    db.commit()
    return {"context": context}
