"""Registration service.

Runs a registration payload through validation, the duplicate check,
hashing, persistence and token issue, stopping at the first failure.
A failed registration never writes to the store.
"""
from __future__ import annotations

from typing import Any, Mapping

import structlog

from auth import TokenSigner, hash_password
from models import User, UserCreate
from rules import ValidationReport, validate_registration
from store import DuplicateKeyError, UserStore

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class RegistrationValidationError(Exception):
    """Raised when a registration payload breaks the payload rules."""

    def __init__(self, report: ValidationReport) -> None:
        self.report = report
        super().__init__(report.summary())


class DuplicateRegistrationError(Exception):
    """Raised when the email is already registered."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("User already registered.")


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class RegistrationService:
    """Registers users against a store and signs their first token."""

    def __init__(self, store: UserStore, signer: TokenSigner) -> None:
        self.store = store
        self.signer = signer

    def register(self, payload: Mapping[str, Any]) -> tuple[User, str]:
        """Register a new user and return ``(user, token)``.

        Branches: REG-INVALID, REG-DUP, REG-RACE, REG-SUCCESS
        """
        report = validate_registration(payload)
        if not report.passed:                                     # REG-INVALID
            logger.info(
                "registration_rejected",
                reason="invalid",
                fields=[v["field"] for v in report.violations()],
            )
            raise RegistrationValidationError(report)

        data = UserCreate.model_validate(dict(payload))

        if self.store.find_by_email(data.email) is not None:      # REG-DUP
            logger.info("registration_rejected", reason="duplicate")
            raise DuplicateRegistrationError(data.email)

        password_hash = hash_password(data.password)

        try:
            user = self.store.create(data.name, data.email, password_hash)
        except DuplicateKeyError as e:                            # REG-RACE
            logger.info("registration_rejected", reason="duplicate_key")
            raise DuplicateRegistrationError(data.email) from e

        # REG-SUCCESS
        token = self.signer.issue(user)
        logger.info("user_registered", user_id=user.id)
        return user, token
