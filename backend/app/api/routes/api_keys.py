from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user_id, get_db
from app import models, schemas
from app.services.encryption import delete_platform_keys, get_platform_keys, save_platform_keys

router = APIRouter(prefix="/api-keys", tags=["api-keys"])


def _status(row: models.ApiKey, keys) -> dict:
    return {
        "platform": row.platform,
        "is_valid": bool(row.is_valid) and keys is not None,
        "last_validated_at": row.last_validated_at,
        "fields": sorted(keys) if keys else [],
    }


@router.put("/", response_model=schemas.ApiKeyStatus)
def save_keys(key_in: schemas.ApiKeySave, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    row = save_platform_keys(db, user_id, key_in.platform, key_in.keys)
    return _status(row, key_in.keys)


@router.get("/", response_model=List[schemas.ApiKeyStatus])
def list_keys(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    rows = db.query(models.ApiKey).filter(models.ApiKey.user_id == user_id).order_by(models.ApiKey.platform).all()
    return [_status(row, get_platform_keys(db, user_id, row.platform)) for row in rows]


@router.delete("/{platform}", status_code=status.HTTP_204_NO_CONTENT)
def delete_keys(platform: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    if not delete_platform_keys(db, user_id, platform):
        raise HTTPException(status_code=404, detail="API keys not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
