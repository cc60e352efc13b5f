from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user_id, get_db
from app import models, schemas

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("/", response_model=List[schemas.Template])
def list_templates(
    category: Optional[models.TemplateCategory] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    query = db.query(models.Template).filter(
        (models.Template.user_id == user_id) | (models.Template.is_public.is_(True))
    )
    if category is not None:
        query = query.filter(models.Template.category == category)
    return query.order_by(models.Template.usage_count.desc(), models.Template.id).all()


@router.post("/", response_model=schemas.Template, status_code=status.HTTP_201_CREATED)
def create_template(
    template_in: schemas.TemplateCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    template = models.Template(user_id=user_id, **template_in.model_dump())
    db.add(template)
    db.commit()
    db.refresh(template)
    return template


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(template_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    template = (
        db.query(models.Template)
        .filter(models.Template.id == template_id, models.Template.user_id == user_id)
        .first()
    )
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    db.delete(template)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
