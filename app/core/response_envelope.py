from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response


def _success_code(status_code: int) -> str:
    mapping = {
        200: "ok",
        201: "created",
        202: "accepted",
    }
    return mapping.get(status_code, "ok")


def _success_message(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Success"


def _build_success_envelope(data: Any, status_code: int, message: str | None = None) -> dict[str, Any]:
    return {
        "success": True,
        "code": _success_code(status_code),
        "message": message or _success_message(status_code),
        "data": data,
        "details": {},
    }


def _is_enveloped(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    return "success" in payload and "message" in payload and "data" in payload


def _normalize_envelope(payload: dict[str, Any], status_code: int) -> dict[str, Any]:
    normalized = dict(payload)
    normalized.setdefault("code", _success_code(status_code))
    normalized.setdefault("details", {})
    return normalized


def _copy_headers(source: Response, target: Response) -> Response:
    for key, value in source.headers.items():
        if key.lower() in {"content-length", "content-type"}:
            continue
        target.headers[key] = value
    return target


class ResponseEnvelopeMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next) -> Response:
        response = await call_next(request)

        if response.status_code < 200 or response.status_code >= 300:
            return response

        if response.status_code == 204:
            new_response = JSONResponse(status_code=200, content=_build_success_envelope(None, 200))
            return _copy_headers(response, new_response)

        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("application/json"):
            return response

        # call_next hands back a streaming response; drain it to inspect the payload.
        raw_body = b""
        async for chunk in response.body_iterator:
            raw_body += chunk

        try:
            payload = json.loads(raw_body.decode("utf-8")) if raw_body else None
        except (UnicodeDecodeError, json.JSONDecodeError):
            passthrough = Response(
                content=raw_body,
                status_code=response.status_code,
                media_type=content_type,
            )
            return _copy_headers(response, passthrough)

        if _is_enveloped(payload):
            normalized = _normalize_envelope(payload, response.status_code)
            new_response = JSONResponse(status_code=response.status_code, content=normalized)
            return _copy_headers(response, new_response)

        wrapped = _build_success_envelope(payload, response.status_code)
        new_response = JSONResponse(status_code=response.status_code, content=wrapped)
        return _copy_headers(response, new_response)


def register_response_envelope(app) -> None:
    app.add_middleware(ResponseEnvelopeMiddleware)
