"""FastAPI REST endpoints for user accounts.

Routes
------
POST   /api/users      Register a new user (token in ``x-auth-token``)
GET    /api/users/me   Get the current user's profile
"""
from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from middleware import AUTH_HEADER, get_current_user
from models import TokenPayload, UserPublic, to_public
from service import (
    DuplicateRegistrationError,
    RegistrationService,
    RegistrationValidationError,
)
from store import UserStore

logger = structlog.get_logger(__name__)

users_router = APIRouter(prefix="/api/users", tags=["users"])


def get_store(request: Request) -> UserStore:
    return request.app.state.store


def get_registration(request: Request) -> RegistrationService:
    return request.app.state.registration


# -- User endpoints ---------------------------------------------------------

@users_router.post("", response_model=UserPublic)
def register(
    response: Response,
    payload: dict[str, Any] = Body(...),
    registration: RegistrationService = Depends(get_registration),
) -> UserPublic:
    """Register a new user account."""
    user, token = registration.register(payload)
    response.headers[AUTH_HEADER] = token
    return to_public(user)


@users_router.get("/me", response_model=UserPublic)
def get_me(
    caller: TokenPayload = Depends(get_current_user),
    store: UserStore = Depends(get_store),
) -> UserPublic:
    """Get the current authenticated user's profile."""
    user = store.find_by_id(caller.id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found.")
    return to_public(user)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

async def _validation_error(
    request: Request, exc: RegistrationValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "errors": exc.report.violations()},
    )


async def _duplicate_registration(
    request: Request, exc: DuplicateRegistrationError
) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _malformed_request(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Malformed request body.",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        exc_type=type(exc).__name__,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Something failed."})


def install_error_handlers(app: FastAPI) -> None:
    """Map domain exceptions onto HTTP responses."""
    app.add_exception_handler(RegistrationValidationError, _validation_error)
    app.add_exception_handler(DuplicateRegistrationError, _duplicate_registration)
    app.add_exception_handler(RequestValidationError, _malformed_request)
    app.add_exception_handler(Exception, _unhandled)
