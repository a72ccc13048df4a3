from __future__ import annotations

import time
from typing import Any, Dict

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> Dict[str, Any]:
    store = type(request.app.state.grid_service.store).__name__
    return {"ok": True, "service": "form-grid-service", "store": store, "ts": int(time.time() * 1000)}
