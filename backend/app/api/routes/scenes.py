from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user_id, get_db, get_owned_project, get_owned_scene
from app import models, schemas

router = APIRouter(prefix="/scenes", tags=["scenes"])


@router.post("/", response_model=schemas.Scene, status_code=status.HTTP_201_CREATED)
def create_scene(
    scene_in: schemas.SceneCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    project = get_owned_project(db, scene_in.project_id, user_id)

    last_order = (
        db.query(func.max(models.Scene.sort_order))
        .filter(models.Scene.project_id == project.id)
        .scalar()
    )
    data = scene_in.model_dump()
    data["scene_number"] = data["scene_number"] or len(project.scenes) + 1
    scene = models.Scene(sort_order=(last_order + 1) if last_order is not None else 0, **data)
    db.add(scene)
    db.commit()
    db.refresh(scene)
    return scene


@router.get("/project/{project_id}", response_model=List[schemas.Scene])
def list_scenes_for_project(
    project_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    get_owned_project(db, project_id, user_id)
    return (
        db.query(models.Scene)
        .filter(models.Scene.project_id == project_id)
        .order_by(models.Scene.sort_order, models.Scene.id)
        .all()
    )


@router.get("/{scene_id}", response_model=schemas.Scene)
def get_scene(scene_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return get_owned_scene(db, scene_id, user_id)


@router.patch("/{scene_id}", response_model=schemas.Scene)
def update_scene(
    scene_id: int,
    scene_in: schemas.SceneUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    scene = get_owned_scene(db, scene_id, user_id)
    data = scene_in.model_dump(exclude_unset=True)
    # a hand-edited prompt needs approving again
    if "optimized_prompt" in data and "prompt_approved" not in data:
        data["prompt_approved"] = False
    for field, value in data.items():
        setattr(scene, field, value)
    db.commit()
    db.refresh(scene)
    return scene


@router.delete("/{scene_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_scene(scene_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    scene = get_owned_scene(db, scene_id, user_id)
    db.delete(scene)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/project/{project_id}/reorder", response_model=List[schemas.Scene])
def reorder_scenes(
    project_id: int,
    reorder_in: schemas.SceneReorder,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    project = get_owned_project(db, project_id, user_id)
    scenes = {s.id: s for s in project.scenes}
    if sorted(reorder_in.scene_ids) != sorted(scenes):
        raise HTTPException(status_code=400, detail="scene_ids must list every scene of the project exactly once")

    for index, scene_id in enumerate(reorder_in.scene_ids):
        scenes[scene_id].sort_order = index
        scenes[scene_id].scene_number = index + 1
    db.commit()
    return [scenes[i] for i in reorder_in.scene_ids]


@router.post("/{scene_id}/approve", response_model=schemas.Scene)
def approve_prompt(scene_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    scene = get_owned_scene(db, scene_id, user_id)
    if not scene.optimized_prompt:
        raise HTTPException(status_code=400, detail="Scene has no optimized prompt to approve")
    scene.prompt_approved = True
    db.commit()
    db.refresh(scene)
    return scene
