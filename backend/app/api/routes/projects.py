from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user_id, get_db, get_owned_code_context, get_owned_project
from app import models, schemas
from app.core.constants import clamp_scene_duration
from app.services.creative import restore_prompts, save_version, scene_from_snapshot, scene_snapshot

router = APIRouter(prefix="/projects", tags=["projects"])

COPIED_FIELDS = (
    "title",
    "product_name",
    "product_description",
    "target_platforms",
    "target_audience",
    "languages",
    "style",
    "tone",
    "additional_notes",
    "source_url",
    "source_context",
    "code_context_id",
    "brand_kit_id",
    "template_id",
)


def _check_brand_kit(db: Session, brand_kit_id: Optional[int], user_id: str) -> None:
    if brand_kit_id is None:
        return
    exists = (
        db.query(models.BrandKit.id)
        .filter(models.BrandKit.id == brand_kit_id, models.BrandKit.user_id == user_id)
        .first()
    )
    if not exists:
        raise HTTPException(status_code=404, detail="Brand kit not found")


def _apply_template(project: models.Project, template: models.Template) -> None:
    for index, item in enumerate(template.scene_structure or []):
        project.scenes.append(
            models.Scene(
                scene_number=index + 1,
                title=item.get("title") or f"Scene {index + 1}",
                description=item.get("description") or item.get("title") or f"Scene {index + 1}",
                duration_seconds=clamp_scene_duration(item.get("duration_seconds", 8)),
                camera_movement=item.get("camera_movement"),
                lighting=item.get("lighting"),
                text_overlay=item.get("text_overlay"),
                sort_order=index,
            )
        )
    template.usage_count = (template.usage_count or 0) + 1


@router.post("/", response_model=schemas.Project, status_code=status.HTTP_201_CREATED)
def create_project(
    project_in: schemas.ProjectCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    _check_brand_kit(db, project_in.brand_kit_id, user_id)
    if project_in.code_context_id is not None:
        get_owned_code_context(db, project_in.code_context_id, user_id)
    project = models.Project(user_id=user_id, **project_in.model_dump())

    if project_in.template_id is not None:
        template = (
            db.query(models.Template)
            .filter(
                models.Template.id == project_in.template_id,
                (models.Template.user_id == user_id) | (models.Template.is_public.is_(True)),
            )
            .first()
        )
        if not template:
            raise HTTPException(status_code=404, detail="Template not found")
        _apply_template(project, template)

    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@router.get("/", response_model=List[schemas.Project])
def list_projects(
    status_filter: Optional[models.ProjectStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    query = db.query(models.Project).filter(models.Project.user_id == user_id)
    if status_filter is not None:
        query = query.filter(models.Project.status == status_filter)
    return query.order_by(models.Project.created_at.desc(), models.Project.id.desc()).all()


@router.get("/{project_id}", response_model=schemas.Project)
def get_project(project_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return get_owned_project(db, project_id, user_id)


@router.patch("/{project_id}", response_model=schemas.Project)
def update_project(
    project_id: int,
    project_in: schemas.ProjectUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    project = get_owned_project(db, project_id, user_id)

    data = project_in.model_dump(exclude_unset=True)
    if "brand_kit_id" in data:
        _check_brand_kit(db, data["brand_kit_id"], user_id)
    if data.get("code_context_id") is not None:
        get_owned_code_context(db, data["code_context_id"], user_id)
    if "strategy" in data and data["strategy"] != project.strategy:
        save_version(db, project, "strategy", data["strategy"], "Strategy edited")
    for field, value in data.items():
        setattr(project, field, value)

    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(project_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    project = get_owned_project(db, project_id, user_id)
    db.delete(project)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/versions", response_model=List[schemas.ProjectVersion])
def list_versions(
    project_id: int,
    step: Optional[str] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    get_owned_project(db, project_id, user_id)
    query = db.query(models.ProjectVersion).filter(models.ProjectVersion.project_id == project_id)
    if step:
        query = query.filter(models.ProjectVersion.step == step)
    return query.order_by(models.ProjectVersion.step, models.ProjectVersion.version_number.desc()).all()


@router.post("/{project_id}/versions/{version_id}/restore", response_model=schemas.Project)
def restore_version(
    project_id: int,
    version_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    project = get_owned_project(db, project_id, user_id)
    version = (
        db.query(models.ProjectVersion)
        .filter(models.ProjectVersion.id == version_id, models.ProjectVersion.project_id == project_id)
        .first()
    )
    if not version:
        raise HTTPException(status_code=404, detail="Version not found")

    if version.step == "strategy":
        project.strategy = version.snapshot
        project.strategy_approved = False
    elif version.step == "scenes":
        project.scenes.clear()
        db.flush()
        for index, item in enumerate(version.snapshot or []):
            project.scenes.append(scene_from_snapshot(item, index))
    elif version.step == "prompts":
        restore_prompts(project, version.snapshot)
    else:
        raise HTTPException(status_code=400, detail=f"Versions of step '{version.step}' cannot be restored")

    save_version(db, project, version.step, version.snapshot, f"Restored version {version.version_number}")
    db.commit()
    db.refresh(project)
    return project


@router.post("/{project_id}/ab-variants", response_model=List[schemas.Project], status_code=status.HTTP_201_CREATED)
def create_ab_variants(
    project_id: int,
    variant_in: schemas.AbVariantCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    parent = get_owned_project(db, project_id, user_id)
    strategy = parent.strategy or {}
    if "version_a" not in strategy or "version_b" not in strategy:
        raise HTTPException(status_code=400, detail="Project has no A/B strategy")

    variants = []
    for key, version_type in (("version_a", models.VersionType.emotional), ("version_b", models.VersionType.technical)):
        child = models.Project(
            user_id=user_id,
            **{field: getattr(parent, field) for field in COPIED_FIELDS},
        )
        child.title = f"{parent.title} ({version_type.value})"
        child.strategy = strategy[key]
        child.is_ab_variant = True
        child.parent_project_id = parent.id
        child.version_type = version_type
        child.advance(models.ProjectStatus.strategy_ready, 2)
        if variant_in.copy_scenes:
            for index, scene in enumerate(parent.scenes):
                child.scenes.append(scene_from_snapshot(scene_snapshot(scene), index))
        db.add(child)
        variants.append(child)

    db.commit()
    for child in variants:
        db.refresh(child)
    return variants
