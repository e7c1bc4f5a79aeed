from datetime import datetime, timedelta, timezone

import pytest
from fastapi import Depends, FastAPI, HTTPException
from fastapi.testclient import TestClient

from conftest import FakeAsyncSession, FakeResult, make_user
from app.api import deps
from app.core.context import get_actor
from app.core.errors import register_exception_handlers
from app.core.permissions import Capability, UserRole
from app.core.response_envelope import register_response_envelope
from app.core.settings import settings


def test_enforce_inactivity_allows_recent_activity(monkeypatch):
    monkeypatch.setattr(settings, "session_timeout_minutes", 30)
    now = datetime.now(timezone.utc)
    deps.enforce_inactivity(now - timedelta(minutes=10), now)


def test_enforce_inactivity_raises_when_expired(monkeypatch):
    monkeypatch.setattr(settings, "session_timeout_minutes", 30)
    now = datetime.now(timezone.utc)
    with pytest.raises(HTTPException) as exc:
        deps.enforce_inactivity(now - timedelta(minutes=45), now)
    assert exc.value.status_code == 401
    assert "Session expired" in exc.value.detail


def _token_payload(monkeypatch, payload: dict) -> None:
    def _decode(token, expected_type=None):
        assert expected_type == "access"
        return payload

    monkeypatch.setattr(deps, "decode_token", _decode)


@pytest.mark.asyncio
async def test_current_user_touches_last_activity_and_sets_actor(monkeypatch):
    user = make_user(token_version=2)
    _token_payload(monkeypatch, {"sub": str(user.id), "org": "default", "tv": 2})
    db = FakeAsyncSession().on_execute_return(FakeResult(scalar=user))

    found = await deps.get_current_user("token", db, deps.TenantContext(org_id="default"))

    assert found is user
    assert user.last_active_at is not None
    assert db.committed
    assert get_actor() == f"{user.role}:{user.id}"


@pytest.mark.asyncio
async def test_current_user_rejects_token_for_other_tenant(monkeypatch):
    _token_payload(monkeypatch, {"sub": "abc", "org": "other-org"})
    db = FakeAsyncSession()
    with pytest.raises(HTTPException) as exc:
        await deps.get_current_user("token", db, deps.TenantContext(org_id="default"))
    assert exc.value.status_code == 401
    assert db.executed == []


@pytest.mark.asyncio
async def test_current_user_rejects_revoked_token(monkeypatch):
    user = make_user(token_version=5)
    _token_payload(monkeypatch, {"sub": str(user.id), "org": "default", "tv": 4})
    db = FakeAsyncSession().on_execute_return(FakeResult(scalar=user))
    with pytest.raises(HTTPException) as exc:
        await deps.get_current_user("token", db, deps.TenantContext(org_id="default"))
    assert exc.value.detail == "Token revoked"
    assert not db.committed


@pytest.mark.asyncio
async def test_current_user_rejects_inactive_user(monkeypatch):
    user = make_user(is_active=False)
    _token_payload(monkeypatch, {"sub": str(user.id)})
    db = FakeAsyncSession().on_execute_return(FakeResult(scalar=user))
    with pytest.raises(HTTPException) as exc:
        await deps.get_current_user("token", db, deps.TenantContext(org_id="default"))
    assert exc.value.detail == "Inactive user"


@pytest.mark.asyncio
async def test_current_user_rejects_bad_token(monkeypatch):
    def _decode(token, expected_type=None):
        raise ValueError("Invalid token")

    monkeypatch.setattr(deps, "decode_token", _decode)
    with pytest.raises(HTTPException) as exc:
        await deps.get_current_user("token", FakeAsyncSession(), deps.TenantContext(org_id="default"))
    assert exc.value.status_code == 401


def _build_app(role: str) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    register_response_envelope(app)

    @app.get("/ledger")
    async def ledger_route(principal=Depends(deps.require_capability(Capability.LEDGER_MANAGE))):
        return {"role": principal.role}

    async def fake_user():
        return make_user(role=role)

    app.dependency_overrides[deps.get_current_user] = fake_user
    return app


def test_require_capability_allows_role_with_capability():
    client = TestClient(_build_app(UserRole.ACCOUNTS_MANAGER.value))
    resp = client.get("/ledger")
    assert resp.status_code == 200
    assert resp.json()["data"]["role"] == "accounts_manager"


def test_require_capability_rejects_role_without_capability():
    client = TestClient(_build_app(UserRole.AGENT.value))
    resp = client.get("/ledger")
    assert resp.status_code == 403
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "forbidden"
    assert body["message"] == "Missing capability: ledger.manage"


def test_regional_manager_reads_but_cannot_write_ledger():
    client = TestClient(_build_app(UserRole.REGIONAL_MANAGER.value))
    assert client.get("/ledger").status_code == 403
