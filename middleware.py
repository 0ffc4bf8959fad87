"""FastAPI authentication dependency.

Reads the ``x-auth-token`` header, verifies it, and hands the decoded
caller to the endpoint.

Branches: AUTHZ-NO-TOKEN, AUTHZ-INVALID-TOKEN, AUTHZ-OK
"""
from __future__ import annotations

import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import APIKeyHeader

from auth import InvalidTokenError, TokenSigner
from models import TokenPayload

AUTH_HEADER = "x-auth-token"

logger = structlog.get_logger(__name__)

_token_header = APIKeyHeader(name=AUTH_HEADER, auto_error=False)


def get_signer(request: Request) -> TokenSigner:
    return request.app.state.signer


def get_current_user(
    token: str | None = Depends(_token_header),
    signer: TokenSigner = Depends(get_signer),
) -> TokenPayload:
    """Dependency: resolve the caller from the token header."""
    if not token:                                                 # AUTHZ-NO-TOKEN
        raise HTTPException(
            status_code=401, detail="Access denied. No token provided."
        )

    try:
        payload = signer.verify(token)
    except InvalidTokenError as e:                                # AUTHZ-INVALID-TOKEN
        logger.info("token_rejected", reason=str(e))
        raise HTTPException(status_code=401, detail="Invalid token.")

    return payload                                                # AUTHZ-OK
