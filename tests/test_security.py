from datetime import timedelta

import pytest

from app.api.auth_utils import constant_time_verify
from app.core.security import create_access_token, decode_token, get_password_hash, verify_password
from app.core.settings import settings


def test_password_hashing_and_verify():
    password = "S0meP@ss!WithLength"
    hashed = get_password_hash(password)
    assert hashed != password
    assert verify_password(password, hashed)
    assert verify_password("S0meP@ss!", hashed) is False


def test_constant_time_verify_without_hash_is_false():
    assert constant_time_verify(None, "Password123!") is False
    assert constant_time_verify("", "Password123!") is False
    hashed = get_password_hash("Password123!")
    assert constant_time_verify(hashed, "Password123!") is True


def test_password_hash_enforces_minimum_length(monkeypatch):
    monkeypatch.setattr(settings, "default_password_min_length", 12)
    with pytest.raises(ValueError):
        get_password_hash("short")


def test_access_token_carries_org_role_and_version(patch_jwt_keys):
    token = create_access_token("user-xyz", org_id="default", role="accounts_manager", token_version=3)

    decoded = decode_token(token, expected_type="access")

    assert decoded["sub"] == "user-xyz"
    assert decoded["org"] == "default"
    assert decoded["role"] == "accounts_manager"
    assert decoded["tv"] == 3
    assert decoded["type"] == "access"


def test_decode_rejects_wrong_token_type(patch_jwt_keys):
    token = create_access_token("user-xyz", org_id="default", role="agent")
    with pytest.raises(ValueError):
        decode_token(token, expected_type="refresh")


def test_decode_rejects_expired_token(patch_jwt_keys):
    token = create_access_token(
        "user-xyz", org_id="default", role="agent", expires_delta=timedelta(minutes=-5)
    )
    with pytest.raises(ValueError):
        decode_token(token)


def test_decode_rejects_garbage(patch_jwt_keys):
    with pytest.raises(ValueError):
        decode_token("not-a-jwt")
