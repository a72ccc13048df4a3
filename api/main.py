from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Dict, Optional, Type

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)


def _repo_root() -> Path:
    # `api/main.py` lives at `<repo>/api/main.py`
    return Path(__file__).resolve().parents[1]


def _ensure_src_on_path() -> None:
    src = _repo_root() / "src"
    if not src.is_dir():
        return
    s = str(src)
    if s not in sys.path:
        sys.path.insert(0, s)


_ensure_src_on_path()

from api.http_logging import install_http_logging  # noqa: E402
from api.routes import health, sections  # noqa: E402
from api.supabase_client import get_supabase_store  # noqa: E402
from api.utils import env_int, error_body, new_request_id  # noqa: E402
from form_grid.errors import (  # noqa: E402
    CellNotFoundError,
    DragDisabledError,
    FormGridError,
    GridLayoutError,
    InvalidDragError,
    PartialMutationError,
    SectionNotFoundError,
    StoreError,
)
from form_grid.service import SectionGridService  # noqa: E402
from form_grid.store import GridStore, InMemoryGridStore  # noqa: E402

logger = logging.getLogger("api")

# Most specific first; the first isinstance match wins.
_ERROR_STATUS: Dict[Type[FormGridError], int] = {
    SectionNotFoundError: HTTP_404_NOT_FOUND,
    CellNotFoundError: HTTP_404_NOT_FOUND,
    GridLayoutError: HTTP_409_CONFLICT,
    DragDisabledError: HTTP_409_CONFLICT,
    InvalidDragError: HTTP_409_CONFLICT,
    PartialMutationError: HTTP_502_BAD_GATEWAY,
    StoreError: HTTP_502_BAD_GATEWAY,
}


def _http_status_for_error(exc: FormGridError) -> int:
    for cls, status in _ERROR_STATUS.items():
        if isinstance(exc, cls):
            return status
    return HTTP_500_INTERNAL_SERVER_ERROR


def _apply_log_level() -> None:
    # Handlers and formatting belong to the server process; only our own loggers are tuned here.
    level = (os.getenv("FORM_GRID_LOG_LEVEL") or "").strip().upper()
    if not level:
        return
    for name in ("api", "form_grid"):
        logging.getLogger(name).setLevel(level)


def _default_store() -> GridStore:
    backend = (os.getenv("FORM_GRID_STORE") or "").strip().lower()
    if backend == "memory":
        return InMemoryGridStore()
    store = get_supabase_store()
    if store is not None:
        return store
    if backend == "supabase":
        raise RuntimeError("FORM_GRID_STORE=supabase but SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY are not set")
    logger.warning("[api] Supabase credentials missing; using in-memory grid store")
    return InMemoryGridStore()


def create_app(store: Optional[GridStore] = None) -> FastAPI:
    # Load `.env` + `.env.local` when present (local dev convenience).
    load_dotenv(_repo_root() / ".env", override=False)
    load_dotenv(_repo_root() / ".env.local", override=False)
    _apply_log_level()

    app = FastAPI(title="form-grid-service", version="0.1.0")
    app.state.grid_service = SectionGridService(
        store if store is not None else _default_store(),
        cache_ttl_sec=env_int("FORM_GRID_SECTION_CACHE_TTL_SEC", 30),
    )

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        request_id = new_request_id("val")
        logger.info("[api] 422 validation_error requestId=%s path=%s errors=%s", request_id, request.url.path, exc.errors())
        return JSONResponse(
            status_code=HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body(
                "validation_error",
                "Request body did not match expected schema.",
                request_id,
                details=[{k: v for k, v in e.items() if k != "ctx"} for e in exc.errors()],
            ),
        )

    @app.exception_handler(FormGridError)
    async def _grid_error_handler(request: Request, exc: FormGridError) -> JSONResponse:
        request_id = new_request_id("grid")
        status = _http_status_for_error(exc)
        logger.info(
            "[api] %s %s requestId=%s path=%s message=%s", status, exc.code, request_id, request.url.path, exc.message
        )
        return JSONResponse(
            status_code=status,
            content=error_body(exc.code, exc.message, request_id, details=exc.details or None),
        )

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = new_request_id("err")
        logger.exception("[api] 500 internal_error requestId=%s path=%s", request_id, request.url.path)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("internal_error", "Unhandled server error.", request_id),
        )

    app.include_router(health.router)
    app.include_router(sections.router)
    install_http_logging(app)
    return app


app = create_app()
