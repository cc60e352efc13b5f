from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user_id, get_db, get_storage
from app import models, schemas
from app.core.files import brand_asset_path, read_upload
from app.services.brand import IMAGE_MIME_PREFIX, extract_palette
from app.services.storage import BaseStorage

router = APIRouter(prefix="/brand", tags=["brand"])

ASSET_TYPES = ("logo", "watermark", "image", "video", "audio", "font")
MAX_UPLOAD_BYTES = 50 * 1024 * 1024


def _get_kit(db: Session, kit_id: int, user_id: str) -> models.BrandKit:
    kit = (
        db.query(models.BrandKit)
        .filter(models.BrandKit.id == kit_id, models.BrandKit.user_id == user_id)
        .first()
    )
    if not kit:
        raise HTTPException(status_code=404, detail="Brand kit not found")
    return kit


def _clear_other_defaults(db: Session, user_id: str, keep_id: Optional[int]) -> None:
    query = db.query(models.BrandKit).filter(models.BrandKit.user_id == user_id, models.BrandKit.is_default.is_(True))
    if keep_id is not None:
        query = query.filter(models.BrandKit.id != keep_id)
    query.update({models.BrandKit.is_default: False}, synchronize_session=False)


@router.post("/kits", response_model=schemas.BrandKit, status_code=status.HTTP_201_CREATED)
def create_kit(kit_in: schemas.BrandKitCreate, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    kit = models.BrandKit(user_id=user_id, **kit_in.model_dump())
    db.add(kit)
    db.flush()
    if kit.is_default:
        _clear_other_defaults(db, user_id, kit.id)
    db.commit()
    db.refresh(kit)
    return kit


@router.get("/kits", response_model=List[schemas.BrandKit])
def list_kits(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return (
        db.query(models.BrandKit)
        .filter(models.BrandKit.user_id == user_id)
        .order_by(models.BrandKit.is_default.desc(), models.BrandKit.created_at.desc())
        .all()
    )


@router.get("/kits/{kit_id}", response_model=schemas.BrandKit)
def get_kit(kit_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return _get_kit(db, kit_id, user_id)


@router.patch("/kits/{kit_id}", response_model=schemas.BrandKit)
def update_kit(
    kit_id: int,
    kit_in: schemas.BrandKitUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    kit = _get_kit(db, kit_id, user_id)
    for field, value in kit_in.model_dump(exclude_unset=True).items():
        setattr(kit, field, value)
    if kit.is_default:
        _clear_other_defaults(db, user_id, kit.id)
    db.commit()
    db.refresh(kit)
    return kit


@router.delete("/kits/{kit_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_kit(kit_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    kit = _get_kit(db, kit_id, user_id)
    db.delete(kit)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/assets", response_model=schemas.BrandAsset, status_code=status.HTTP_201_CREATED)
def upload_asset(
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
    type: str = Form("image"),
    brand_kit_id: Optional[int] = Form(None),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    storage: BaseStorage = Depends(get_storage),
):
    if type not in ASSET_TYPES:
        raise HTTPException(status_code=400, detail=f"type must be one of {', '.join(ASSET_TYPES)}")
    kit = _get_kit(db, brand_kit_id, user_id) if brand_kit_id is not None else None

    data = read_upload(file)
    if not data:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File too large (max 50 MB)")

    mime_type = file.content_type or "application/octet-stream"
    url = storage.upload_bytes(brand_asset_path(user_id, file.filename), data, mime_type)
    palette = extract_palette(data) if mime_type.startswith(IMAGE_MIME_PREFIX) else None

    asset = models.BrandAsset(
        user_id=user_id,
        brand_kit_id=kit.id if kit else None,
        name=name or file.filename or "asset",
        type=type,
        file_url=url,
        file_size=len(data),
        mime_type=mime_type,
        tags=[],
        palette=palette,
    )
    db.add(asset)
    if kit is not None and type == "logo":
        kit.logo_url = url
    if kit is not None and type == "watermark":
        kit.watermark_url = url
    db.commit()
    db.refresh(asset)
    return asset


@router.get("/assets", response_model=List[schemas.BrandAsset])
def list_assets(
    brand_kit_id: Optional[int] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    query = db.query(models.BrandAsset).filter(models.BrandAsset.user_id == user_id)
    if brand_kit_id is not None:
        query = query.filter(models.BrandAsset.brand_kit_id == brand_kit_id)
    return query.order_by(models.BrandAsset.created_at.desc()).all()


@router.delete("/assets/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_asset(asset_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    asset = (
        db.query(models.BrandAsset)
        .filter(models.BrandAsset.id == asset_id, models.BrandAsset.user_id == user_id)
        .first()
    )
    if not asset:
        raise HTTPException(status_code=404, detail="Asset not found")
    db.delete(asset)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
