"""
Encryption for ad-platform and GitHub API keys stored in the api_keys table.
"""
import json
import logging
from datetime import datetime
from typing import Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.orm import Session

from app import models
from app.core.config import settings

logger = logging.getLogger(__name__)

REQUIRED_KEY_FIELDS = {
    "google_ads": ("client_id", "client_secret", "developer_token", "refresh_token"),
    "meta_ads": ("app_id", "app_secret", "access_token"),
    "github": ("personal_access_token",),
}


class KeyCipher:
    """Fernet wrapper for JSON key bundles."""

    def __init__(self, key: Optional[str] = None):
        key = key or settings.ENCRYPTION_KEY
        if not key:
            if settings.is_production:
                raise RuntimeError("ENCRYPTION_KEY must be set in production")
            logger.warning("No ENCRYPTION_KEY configured, generating an ephemeral key (dev only)")
            key = Fernet.generate_key().decode()
        self.cipher = Fernet(key.encode() if isinstance(key, str) else key)

    def encrypt_json(self, data: Dict) -> str:
        return self.cipher.encrypt(json.dumps(data).encode()).decode()

    def decrypt_json(self, token: str) -> Dict:
        return json.loads(self.cipher.decrypt(token.encode()).decode())

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()


_cipher: Optional[KeyCipher] = None


def get_cipher() -> KeyCipher:
    global _cipher
    if _cipher is None:
        _cipher = KeyCipher()
    return _cipher


def missing_fields(platform: str, keys: Dict) -> list:
    return [f for f in REQUIRED_KEY_FIELDS.get(platform, ()) if not keys.get(f)]


def save_platform_keys(db: Session, user_id: str, platform: str, keys: Dict, cipher: Optional[KeyCipher] = None) -> models.ApiKey:
    cipher = cipher or get_cipher()
    row = (
        db.query(models.ApiKey)
        .filter(models.ApiKey.user_id == user_id, models.ApiKey.platform == platform)
        .first()
    )
    if row is None:
        row = models.ApiKey(user_id=user_id, platform=platform)
        db.add(row)
    row.keys_encrypted = cipher.encrypt_json(keys)
    row.is_valid = not missing_fields(platform, keys)
    row.last_validated_at = datetime.utcnow()
    db.commit()
    db.refresh(row)
    return row


def get_platform_keys(db: Session, user_id: str, platform: str, cipher: Optional[KeyCipher] = None) -> Optional[Dict]:
    row = (
        db.query(models.ApiKey)
        .filter(models.ApiKey.user_id == user_id, models.ApiKey.platform == platform)
        .first()
    )
    if row is None:
        return None
    try:
        return (cipher or get_cipher()).decrypt_json(row.keys_encrypted)
    except (InvalidToken, ValueError) as e:
        logger.warning("Stored %s keys for %s could not be decrypted: %s", platform, user_id, e)
        return None


def delete_platform_keys(db: Session, user_id: str, platform: str) -> bool:
    deleted = (
        db.query(models.ApiKey)
        .filter(models.ApiKey.user_id == user_id, models.ApiKey.platform == platform)
        .delete()
    )
    db.commit()
    return bool(deleted)
