import uuid
from typing import List

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import (
    ai_guard,
    get_current_user_id,
    get_db,
    get_github_fetcher,
    get_llm_client,
    get_owned_code_context,
    get_storage,
)
from app import models, schemas
from app.core.files import read_upload
from app.services.code_context import GitHubRepoFetcher, analyze_code_context
from app.services.encryption import get_platform_keys
from app.services.llm import LLMClient
from app.services.storage import BaseStorage

router = APIRouter(prefix="/code-context", tags=["code-context"])

MAX_UPLOAD_BYTES = 5 * 1024 * 1024


def _save(db: Session, user_id: str, **fields) -> models.CodeContext:
    code_context = models.CodeContext(user_id=user_id, **fields)
    db.add(code_context)
    db.commit()
    db.refresh(code_context)
    return code_context


@router.post(
    "/upload",
    response_model=schemas.CodeContext,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(ai_guard("ai-gemini"))],
)
def upload_codebase(
    file: UploadFile = File(...),
    name: str = Form("Uploaded Codebase"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    llm: LLMClient = Depends(get_llm_client),
    storage: BaseStorage = Depends(get_storage),
):
    data = read_upload(file)
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File too large. Maximum size is 5MB.")
    raw_text = data.decode("utf-8", errors="replace")
    if not raw_text.strip():
        raise HTTPException(status_code=400, detail="File is empty")

    analysis, token_count, file_tree = analyze_code_context(db, user_id, raw_text, llm)
    raw_file_url = storage.upload_bytes(f"code-context/{user_id}/{uuid.uuid4().hex}.txt", data, "text/plain")
    return _save(
        db,
        user_id,
        name=name.strip() or "Uploaded Codebase",
        source_type=models.CodeContextSource.repomix_upload,
        raw_file_url=raw_file_url,
        analysis=analysis,
        file_tree=file_tree,
        token_count=token_count,
    )


@router.post(
    "/github",
    response_model=schemas.CodeContext,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(ai_guard("ai-gemini"))],
)
def analyze_github_repo(
    request: schemas.CodeContextGithubRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    llm: LLMClient = Depends(get_llm_client),
    fetcher: GitHubRepoFetcher = Depends(get_github_fetcher),
):
    keys = get_platform_keys(db, user_id, "github")
    if not keys or not keys.get("personal_access_token"):
        raise HTTPException(
            status_code=400,
            detail="GitHub Personal Access Token not configured. Add it in Settings.",
        )

    assembled, repo_name = fetcher.fetch_repo(request.repo_url, keys["personal_access_token"])
    analysis, token_count, file_tree = analyze_code_context(db, user_id, assembled, llm)
    return _save(
        db,
        user_id,
        name=repo_name,
        source_type=models.CodeContextSource.github_pat,
        repo_url=request.repo_url,
        analysis=analysis,
        file_tree=file_tree,
        token_count=token_count,
    )


@router.get("/", response_model=List[schemas.CodeContext])
def list_code_contexts(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return (
        db.query(models.CodeContext)
        .filter(models.CodeContext.user_id == user_id)
        .order_by(models.CodeContext.created_at.desc(), models.CodeContext.id.desc())
        .all()
    )


@router.get("/{code_context_id}", response_model=schemas.CodeContext)
def get_code_context(code_context_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return get_owned_code_context(db, code_context_id, user_id)


@router.patch("/{code_context_id}", response_model=schemas.CodeContext)
def rename_code_context(
    code_context_id: int,
    update: schemas.CodeContextUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    code_context = get_owned_code_context(db, code_context_id, user_id)
    code_context.name = update.name
    db.commit()
    db.refresh(code_context)
    return code_context


@router.delete("/{code_context_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_code_context(
    code_context_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    storage: BaseStorage = Depends(get_storage),
):
    code_context = get_owned_code_context(db, code_context_id, user_id)
    raw_file_url = code_context.raw_file_url
    db.query(models.Project).filter(models.Project.code_context_id == code_context.id).update(
        {models.Project.code_context_id: None}, synchronize_session=False
    )
    db.delete(code_context)
    db.commit()
    if raw_file_url:
        storage.delete(raw_file_url)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
