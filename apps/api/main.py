"""
Claims Timeline API - FastAPI application entry point.
"""
from __future__ import annotations

import logging
import os
import sys
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from packages.shared.error_messages import error_payload
from packages.shared.errors import (
    ConfigurationFailure,
    FileAccessFailure,
    ParseFailure,
)


def _parse_csv_env(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return [value.strip() for value in raw.split(",") if value.strip()]


def _parse_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


logging.basicConfig(
    level=logging.DEBUG if _parse_bool_env("CLAIMS_PARSER_DEBUG", False) else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("claims_timeline")

app = FastAPI(
    title="Claims Timeline API",
    description="Normalize medical claims exports into sortable timelines",
    version="0.1.0",
)

cors_allow_origins = _parse_csv_env(
    "CORS_ALLOW_ORIGINS",
    [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
)
audit_logging_enabled = _parse_bool_env("AUDIT_LOGGING", True)
max_request_bytes = int(os.getenv("MAX_REQUEST_BYTES", str(25 * 1024 * 1024)))

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_allow_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-Id"],
)


@app.middleware("http")
async def request_limits_and_audit_middleware(request: Request, call_next):
    started = time.perf_counter()
    request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex

    content_length = request.headers.get("Content-Length")
    if content_length:
        try:
            if int(content_length) > max_request_bytes:
                return JSONResponse(
                    status_code=413,
                    content={"detail": "Request entity too large"},
                    headers={"X-Request-Id": request_id},
                )
        except ValueError:
            pass

    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id

    if audit_logging_enabled:
        duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "request_audit request_id=%s method=%s path=%s status=%s duration_ms=%s",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
    return response


def _status_for(failure: ParseFailure) -> int:
    if isinstance(failure, ConfigurationFailure):
        return 400
    if isinstance(failure, FileAccessFailure):
        return 500
    return 422


@app.exception_handler(ParseFailure)
async def parse_failure_handler(request: Request, exc: ParseFailure):
    status = _status_for(exc)
    logger.warning("Parse failure on %s: %s %s", request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=status, content={"error": error_payload(exc)})


# Register routes
from apps.api.routes.timeline import router as timeline_router  # noqa: E402

app.include_router(timeline_router)


@app.get("/health")
def health():
    return {"status": "ok", "version": "0.1.0"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("apps.api.main:app", host="0.0.0.0", port=8000, reload=True)
