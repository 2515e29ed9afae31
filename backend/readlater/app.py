"""FastAPI application setup for ReadLater."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from readlater.api.dependencies import (
    get_app_settings,
    get_article_store,
    get_database,
    get_highlight_store,
    get_note_store,
)
from readlater.api.routes_admin import router as admin_router
from readlater.api.routes_articles import router as articles_router
from readlater.api.routes_highlights import router as highlights_router
from readlater.api.routes_notes import router as notes_router
from readlater.core.errors import ReadLaterError
from readlater.core.logging import configure_logging, get_logger, log_context
from readlater.core.metrics import REQUEST_COUNT, REQUEST_LATENCY

_settings = get_app_settings()
configure_logging(_settings.log_level, use_json=_settings.log_json)
logger = get_logger(__name__)

app = FastAPI(
    title="ReadLater",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.include_router(articles_router, prefix="/articles", tags=["articles"])
app.include_router(highlights_router, prefix="/highlights", tags=["highlights"])
app.include_router(notes_router, prefix="/notes", tags=["notes"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    started = time.perf_counter()
    with log_context(method=request.method, path=request.url.path):
        response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", "unmatched")
    REQUEST_LATENCY.labels(endpoint=endpoint, method=request.method).observe(time.perf_counter() - started)
    REQUEST_COUNT.labels(endpoint=endpoint, method=request.method, status=str(response.status_code)).inc()
    return response


@app.exception_handler(ReadLaterError)
async def handle_domain_error(request: Request, exc: ReadLaterError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Unhandled domain error on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ())[1:])}: {error.get('msg')}"
        for error in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": "Validation Error", "message": message})


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    get_app_settings()
    get_database()
    get_article_store()
    get_highlight_store()
    get_note_store()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
