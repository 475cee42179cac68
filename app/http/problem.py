"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and the handlers that turn lifecycle errors,
HTTP exceptions and validation failures into application/problem+json.
"""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.logic.errors import (
    AuthRequiredError,
    BatchCommitFailure,
    EntityNotFound,
    InvalidGraphError,
    LifecycleError,
    QueryFailure,
)

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)

# Lifecycle error -> (status, title)
LIFECYCLE_STATUS: Dict[type, tuple[int, str]] = {
    AuthRequiredError: (401, "Authentication Required"),
    EntityNotFound: (404, "Not Found"),
    QueryFailure: (502, "Store Read Failed"),
    BatchCommitFailure: (503, "Store Write Failed"),
    InvalidGraphError: (500, "Invalid Cascade Graph"),
}


def problem_for(exc: LifecycleError) -> Dict[str, object]:
    status, title = next(
        (v for k, v in LIFECYCLE_STATUS.items() if isinstance(exc, k)),
        (500, "Lifecycle Error"),
    )
    problem: Dict[str, object] = {
        "title": title,
        "status": status,
        "detail": str(exc),
        "code": exc.code,
    }
    if isinstance(exc, BatchCommitFailure):
        problem["partially_applied"] = exc.partially_applied
        problem["groups_committed"] = exc.groups_committed
    return problem


async def handle_lifecycle_error(request: Request, exc: LifecycleError) -> JSONResponse:  # noqa: D401
    problem = problem_for(exc)
    if int(problem["status"]) >= 500:
        logger.error("lifecycle_error code=%s path=%s detail=%s", exc.code, request.url.path, exc)
    else:
        logger.info("lifecycle_error code=%s path=%s", exc.code, request.url.path)
    return JSONResponse(problem, status_code=int(problem["status"]), media_type=PROBLEM_MEDIA_TYPE)


async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:  # noqa: D401
    problem = {"title": "Invalid Request", "status": 400, "detail": str(exc), "code": "INVALID_REQUEST"}
    return JSONResponse(problem, status_code=400, media_type=PROBLEM_MEDIA_TYPE)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status = int(getattr(exc, "status_code", 500) or 500)
    detail = exc.detail if isinstance(exc.detail, dict) else {
        "title": "Error",
        "status": status,
        "detail": str(exc.detail or ""),
    }
    return JSONResponse(
        detail,
        status_code=status,
        media_type=PROBLEM_MEDIA_TYPE,
        headers=dict(exc.headers) if exc.headers else None,
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    problem = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "errors": [
            {"loc": list(e.get("loc", ())), "msg": str(e.get("msg", "")), "type": str(e.get("type", ""))}
            for e in exc.errors()
        ],
    }
    return JSONResponse(problem, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse({"title": "Internal Server Error", "status": 500}, status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "LIFECYCLE_STATUS",
    "problem_for",
    "handle_lifecycle_error",
    "handle_value_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
