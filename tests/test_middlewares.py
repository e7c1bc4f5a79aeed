from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from app.core import context
from app.middlewares.request_context import RequestContextMiddleware
from app.middlewares.security_headers import SecurityHeadersMiddleware, security_headers
from app.middlewares.trust_proxies import TrustedProxiesMiddleware, client_ip_from_forwarded


def test_client_ip_uses_hop_before_trusted_proxies():
    assert client_ip_from_forwarded("203.0.113.9, 10.0.0.2", 1) == "203.0.113.9"
    assert client_ip_from_forwarded("198.51.100.1, 203.0.113.9, 10.0.0.2", 2) == "198.51.100.1"


def test_client_ip_ignores_short_or_untrusted_chains():
    assert client_ip_from_forwarded("10.0.0.2", 1) is None
    assert client_ip_from_forwarded("", 1) is None
    assert client_ip_from_forwarded("203.0.113.9, 10.0.0.2", 0) is None


def test_hsts_only_when_enabled():
    names = {name for name, _ in security_headers(enable_hsts=False)}
    assert b"strict-transport-security" not in names
    assert b"cache-control" in names
    names = {name for name, _ in security_headers(enable_hsts=True)}
    assert b"strict-transport-security" in names


def _build_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(TrustedProxiesMiddleware, proxies_count=1)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=False)

    @app.get("/echo")
    async def echo(request: Request):
        return {
            "client": request.client.host if request.client else None,
            "request_id": context.get_request_id(),
            "tenant_id": context.get_tenant_id(),
        }

    return app


def test_request_context_binds_and_echoes_request_id():
    client = TestClient(_build_app())
    resp = client.get("/echo", headers={"X-Request-ID": "req-123", "X-Tenant-ID": "acme"})
    assert resp.headers["x-request-id"] == "req-123"
    assert resp.json()["request_id"] == "req-123"
    assert resp.json()["tenant_id"] == "acme"
    assert context.get_request_id() == "-"


def test_request_id_generated_when_missing():
    client = TestClient(_build_app())
    resp = client.get("/echo")
    assert len(resp.headers["x-request-id"]) == 32


def test_security_headers_and_forwarded_client():
    client = TestClient(_build_app())
    resp = client.get("/echo", headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.2"})
    assert resp.headers["x-frame-options"] == "DENY"
    assert resp.headers["cache-control"] == "no-store"
    assert resp.json()["client"] == "203.0.113.9"
