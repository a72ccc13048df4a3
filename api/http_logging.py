from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from api.utils import env_bool, env_int

logger = logging.getLogger("api.http")


_SENSITIVE_KEYS = {
    "authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
    "apikey",
    "access_token",
    "refresh_token",
    "password",
    "supabase_service_role_key",
}


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: ("***" if str(k).lower() in _SENSITIVE_KEYS else _redact(v)) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact(v) for v in value]
    return value


def _header(headers: Iterable[Tuple[bytes, bytes]], name: bytes) -> str:
    for k, v in headers:
        if k.lower() == name:
            return v.decode("latin-1", errors="replace")
    return ""


def _decode_headers(headers: Iterable[Tuple[bytes, bytes]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for k, v in headers:
        key = k.decode("latin-1", errors="replace").lower()
        out[key] = "***" if key in _SENSITIVE_KEYS else v.decode("latin-1", errors="replace")
    return out


def _parse_body(content_type: str, body: bytes) -> Any:
    if not body:
        return ""
    if "application/json" in (content_type or "").lower():
        try:
            return _redact(json.loads(body.decode("utf-8", errors="replace")))
        except ValueError:
            pass
    return body.decode("utf-8", errors="replace")


class HttpLoggingMiddleware:
    """Logs one JSON line per HTTP request: method, path, status, duration and (capped) bodies."""

    def __init__(self, app: ASGIApp, *, log_headers: bool, max_body_bytes: int) -> None:
        self.app = app
        self.log_headers = log_headers
        self.max_body_bytes = max(0, max_body_bytes)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        started_at = time.perf_counter()
        req_headers: List[Tuple[bytes, bytes]] = list(scope.get("headers") or [])
        request_id = _header(req_headers, b"x-request-id") or uuid.uuid4().hex[:12]
        req_body = bytearray()
        res_body = bytearray()
        res_headers: List[Tuple[bytes, bytes]] = []
        res_status: Optional[int] = None

        def _capture(buf: bytearray, chunk: bytes) -> None:
            remaining = self.max_body_bytes - len(buf)
            if chunk and remaining > 0:
                buf.extend(chunk[:remaining])

        async def receive_wrapped() -> Message:
            message = await receive()
            if message.get("type") == "http.request":
                _capture(req_body, message.get("body") or b"")
            return message

        async def send_wrapped(message: Message) -> None:
            nonlocal res_status, res_headers
            if message.get("type") == "http.response.start":
                res_status = int(message.get("status") or 0)
                res_headers = list(message.get("headers") or [])
            elif message.get("type") == "http.response.body":
                _capture(res_body, message.get("body") or b"")
            await send(message)

        err: Optional[BaseException] = None
        try:
            await self.app(scope, receive_wrapped, send_wrapped)
        except BaseException as e:  # noqa: BLE001 - log then re-raise
            err = e
            raise
        finally:
            record: Dict[str, Any] = {
                "id": request_id,
                "method": str(scope.get("method") or "").upper(),
                "path": str(scope.get("path") or ""),
                "status": res_status,
                "dur_ms": int((time.perf_counter() - started_at) * 1000),
                "request": {"body": _parse_body(_header(req_headers, b"content-type"), bytes(req_body))},
                "response": {"body": _parse_body(_header(res_headers, b"content-type"), bytes(res_body))},
            }
            if self.log_headers:
                record["request"]["headers"] = _decode_headers(req_headers)
                record["response"]["headers"] = _decode_headers(res_headers)
            if err is not None:
                record["error"] = {"type": type(err).__name__, "message": str(err)}
            logger.info(json.dumps(record, ensure_ascii=False, separators=(",", ":"), default=str))


def install_http_logging(app: Any) -> None:
    """
    Enable request/response logging via env vars.

    - `FORM_GRID_HTTP_LOG=1` enables middleware
    - `FORM_GRID_HTTP_LOG_HEADERS=1` logs request/response headers (redacted)
    - `FORM_GRID_HTTP_LOG_BODY_MAX_BYTES=4096` caps body bytes captured per request/response
    """
    if not env_bool("FORM_GRID_HTTP_LOG", default=False):
        return
    app.add_middleware(
        HttpLoggingMiddleware,
        log_headers=env_bool("FORM_GRID_HTTP_LOG_HEADERS", default=False),
        max_body_bytes=env_int("FORM_GRID_HTTP_LOG_BODY_MAX_BYTES", default=4096),
    )
