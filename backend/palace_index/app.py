"""FastAPI application setup for the palace index."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from palace_index.api.dependencies import (
    get_app_settings,
    get_butler,
    get_callgraph,
    get_database,
    get_scanner,
)
from palace_index.api.errors import to_http_exception
from palace_index.api.routes_admin import router as admin_router
from palace_index.api.routes_index import router as index_router
from palace_index.api.routes_query import router as query_router
from palace_index.core.errors import PalaceError
from palace_index.core.logging import configure_logging, get_logger
from palace_index.core.metrics import REQUEST_COUNT, REQUEST_LATENCY

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Palace Index",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:5174",
        "http://localhost:5174",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(index_router, prefix="", tags=["index"])
app.include_router(query_router, prefix="", tags=["query"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    endpoint = request.url.path
    REQUEST_LATENCY.labels(endpoint=endpoint, method=request.method).observe(time.perf_counter() - start)
    REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
    return response


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    settings = get_app_settings()
    configure_logging(settings.log_level, use_json=settings.log_json)
    try:
        get_database()
        get_scanner()
        get_butler()
        get_callgraph()
    except PalaceError as exc:
        logger.warning("Workspace %s unavailable at startup: %s", settings.workspace_root, exc)


@app.exception_handler(PalaceError)
async def palace_error_handler(request: Request, exc: PalaceError) -> JSONResponse:
    http_exc = to_http_exception(exc)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
