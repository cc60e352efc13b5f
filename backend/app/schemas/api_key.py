from datetime import datetime
from typing import Optional, Dict

from pydantic import BaseModel, Field


class ApiKeySave(BaseModel):
    platform: str = Field(..., pattern="^(google_ads|meta_ads|github)$")
    keys: Dict[str, str]


class ApiKeyStatus(BaseModel):
    platform: str
    is_valid: bool
    last_validated_at: Optional[datetime] = None
    # key names only, never the values
    fields: list[str] = []
