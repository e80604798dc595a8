"""
FastAPI app entry point aggregating per-domain routers under kana_backend/routes.
Keep as `uvicorn kana_backend.api:app`.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import load_config
from .db import ensure_schema
from .logs import setup_logging
from .middleware import (
    REQUEST_ID_HEADER,
    AccessLogMiddleware,
    RecoveryMiddleware,
    RequestIdMiddleware,
    RequestSizeLimitMiddleware,
)

logger = logging.getLogger(__name__)

config = load_config()
setup_logging(config.log_level)

app = FastAPI(title="kana-learn-api", version=__version__)

# 先加的在内层：size limit 最靠近路由，CORS 在最外层
app.add_middleware(RequestSizeLimitMiddleware, max_size=config.max_request_size)
app.add_middleware(RecoveryMiddleware)
app.add_middleware(AccessLogMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", REQUEST_ID_HEADER],
    expose_headers=[REQUEST_ID_HEADER],
    max_age=3600,
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # 统一为 {"error": ...}，例如 "invalid count parameter: Input should be ..."
    parts = []
    for err in exc.errors():
        name = err.get("loc", ())[-1] if err.get("loc") else "request"
        parts.append(f"invalid {name} parameter: {err.get('msg', 'invalid value')}")
    return JSONResponse({"error": "; ".join(parts) or "invalid request"}, status_code=422)


@app.on_event("startup")
def on_startup():
    ensure_schema()
    logger.info(f"kana-learn-api {__version__} started, cors origins: {config.cors_origins}")


# Include routers (split by business domain)
from .routes import base as base_routes
from .routes import characters as characters_routes
from .routes import quizzes as quizzes_routes
from .routes import logs as logs_routes

app.include_router(base_routes.router)
app.include_router(characters_routes.router)
app.include_router(quizzes_routes.router)
app.include_router(logs_routes.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("kana_backend.api:app", host="0.0.0.0", port=config.server_port)
