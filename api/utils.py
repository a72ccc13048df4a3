from __future__ import annotations

import os
import time
import uuid
from typing import Any, Dict, Optional


def env_bool(name: str, default: bool = False) -> bool:
    v = (os.getenv(name) or "").strip().lower()
    if not v:
        return default
    return v in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def new_request_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def error_body(error: str, message: str, request_id: str, details: Optional[Any] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"ok": False, "error": error, "message": message, "requestId": request_id}
    if details:
        body["details"] = details
    return body
