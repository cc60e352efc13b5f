import pytest
from cryptography.fernet import Fernet

from app import models
from app.services.encryption import (
    KeyCipher,
    delete_platform_keys,
    get_platform_keys,
    missing_fields,
    save_platform_keys,
)

from conftest import USER_ID

GOOGLE_KEYS = {
    "client_id": "id",
    "client_secret": "secret",
    "developer_token": "dev",
    "refresh_token": "refresh",
}


@pytest.fixture()
def cipher():
    return KeyCipher(Fernet.generate_key().decode())


def test_json_bundle_is_not_stored_in_clear(cipher):
    token = cipher.encrypt_json(GOOGLE_KEYS)
    assert "secret" not in token
    assert cipher.decrypt_json(token) == GOOGLE_KEYS


def test_missing_fields():
    assert missing_fields("google_ads", GOOGLE_KEYS) == []
    assert missing_fields("meta_ads", {"app_id": "x"}) == ["app_secret", "access_token"]


def test_save_marks_incomplete_bundle_invalid(db, cipher):
    row = save_platform_keys(db, USER_ID, "google_ads", {"client_id": "id"}, cipher)
    assert row.is_valid is False

    row = save_platform_keys(db, USER_ID, "google_ads", GOOGLE_KEYS, cipher)
    assert row.is_valid is True
    assert db.query(models.ApiKey).count() == 1
    assert get_platform_keys(db, USER_ID, "google_ads", cipher) == GOOGLE_KEYS


def test_undecryptable_keys_read_as_missing(db, cipher):
    save_platform_keys(db, USER_ID, "google_ads", GOOGLE_KEYS, cipher)
    other = KeyCipher(Fernet.generate_key().decode())
    assert get_platform_keys(db, USER_ID, "google_ads", other) is None


def test_keys_are_scoped_per_user(db, cipher):
    save_platform_keys(db, USER_ID, "google_ads", GOOGLE_KEYS, cipher)
    assert get_platform_keys(db, "someone-else", "google_ads", cipher) is None


def test_delete(db, cipher):
    save_platform_keys(db, USER_ID, "meta_ads", {"app_id": "a"}, cipher)
    assert delete_platform_keys(db, USER_ID, "meta_ads") is True
    assert delete_platform_keys(db, USER_ID, "meta_ads") is False
