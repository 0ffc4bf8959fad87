"""Application factory and entry point.

Run with:
    USERS_JWT_PRIVATE_KEY=... uvicorn app:create_app --factory --reload

or through the ``users-service`` console script.  Both paths load settings
through ``load_settings``, which configures logging and exits with status 1
when the signing key is missing.
"""
from __future__ import annotations

import sys

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from pydantic import ValidationError

from api import install_error_handlers, users_router
from auth import TokenSigner
from log import configure_logging
from middleware import AUTH_HEADER
from service import RegistrationService
from settings import Settings
from store import UserStore

logger = structlog.get_logger(__name__)


def load_settings() -> Settings:
    """Read settings from the environment and configure logging.

    A missing or invalid configuration is fatal: it is logged and the
    process exits with status 1.
    """
    try:
        settings = Settings()
    except ValidationError as e:
        configure_logging()
        missing_key = any(
            "jwt_private_key" in err["loc"] for err in e.errors()
        )
        logger.critical(
            "FATAL ERROR: jwt private key is not defined."
            if missing_key
            else "FATAL ERROR: invalid configuration.",
            errors=[str(err["loc"]) for err in e.errors()],
        )
        sys.exit(1)

    configure_logging(settings.log_level, json_logs=settings.is_production)
    return settings


def create_app(
    settings: Settings | None = None,
    store: UserStore | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Accepts explicit settings and store for testing.  Without settings the
    environment is read through ``load_settings``.
    """
    if settings is None:
        settings = load_settings()
    if store is None:
        store = UserStore()

    signer = TokenSigner(secret=settings.jwt_private_key)

    app = FastAPI(
        title="User Accounts API",
        description=(
            "Registers users and issues an x-auth-token credential that "
            "resolves back to the caller on later requests."
        ),
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.store = store
    app.state.signer = signer
    app.state.registration = RegistrationService(store=store, signer=signer)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[AUTH_HEADER],
    )
    if settings.is_production:
        app.add_middleware(GZipMiddleware)

    install_error_handlers(app)
    app.include_router(users_router)
    return app


def main() -> None:
    """Console entry point: load settings, configure logging, serve."""
    settings = load_settings()
    app = create_app(settings=settings)
    logger.info("listening", port=settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
