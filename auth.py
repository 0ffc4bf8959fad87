"""Core credential logic.

Provides password hashing and token creation/validation.  Every decision
branch is annotated with its branch id (see ``rules.BRANCHES``) so
white-box tests can trace coverage back to the code.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import os
import time
from dataclasses import dataclass

from models import TokenPayload, User


class InvalidTokenError(ValueError):
    """Raised when a presented token cannot be verified."""


# ---------------------------------------------------------------------------
# Password hashing (PBKDF2-HMAC-SHA256)
# ---------------------------------------------------------------------------

_HASH_ITERATIONS = 100_000
_SALT_BYTES = 16


def _derive(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt, _HASH_ITERATIONS
    )


def hash_password(password: str) -> str:
    """Hash a plaintext password using PBKDF2-HMAC-SHA256.

    Returns a string in the format ``salt_hex$digest_hex``.  Length limits
    are enforced by the registration rules, not here.

    Branches: PWD-EMPTY, PWD-VALID
    """
    if not password:                                              # PWD-EMPTY
        raise ValueError("Password must not be empty")

    # PWD-VALID
    salt = os.urandom(_SALT_BYTES)
    return salt.hex() + "$" + _derive(password, salt).hex()


def verify_password(password: str, stored_hash: str) -> bool:
    """Check a plaintext password against a stored hash.

    Branches: VERIFY-MATCH, VERIFY-MISMATCH, VERIFY-BAD-FMT
    """
    if "$" not in stored_hash:                                    # VERIFY-BAD-FMT
        raise ValueError("Invalid hash format: missing separator")

    salt_hex, digest_hex = stored_hash.split("$", 1)
    try:
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(digest_hex)
    except ValueError as e:                                       # VERIFY-BAD-FMT
        raise ValueError(f"Invalid hash format: {e}") from e

    if not password:
        return False

    if hmac.compare_digest(_derive(password, salt), expected):    # VERIFY-MATCH
        return True
    return False                                                  # VERIFY-MISMATCH


# ---------------------------------------------------------------------------
# Token creation / validation
# ---------------------------------------------------------------------------

def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(s: str) -> bytes:
    padding = 4 - len(s) % 4
    if padding != 4:
        s += "=" * padding
    return base64.urlsafe_b64decode(s)


def _sign(payload_b64: str, secret: str) -> str:
    return hmac.new(
        secret.encode("utf-8"),
        payload_b64.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def create_token(subject: str, secret: str, is_admin: bool = False) -> str:
    """Create a signed token.

    Token format: ``base64url(json_payload).hex(hmac_sha256)``.  Tokens
    carry no expiry.

    Branches: TOKEN-CREATE-OK, TOKEN-CREATE-NO-SUB, TOKEN-CREATE-NO-SECRET
    """
    if not subject:                                               # TOKEN-CREATE-NO-SUB
        raise ValueError("Token subject must not be empty")

    if not secret:                                                # TOKEN-CREATE-NO-SECRET
        raise ValueError("Token secret must not be empty")

    # TOKEN-CREATE-OK
    payload = {
        "sub": subject,
        "is_admin": bool(is_admin),
        "iat": time.time(),
    }
    payload_json = json.dumps(payload, separators=(",", ":"))
    payload_b64 = _b64url_encode(payload_json.encode("utf-8"))
    signature = _sign(payload_b64, secret)
    return f"{payload_b64}.{signature}"


def validate_token(token: str, secret: str) -> dict:
    """Validate a token and return its payload.

    Branches: TOKEN-VALID, TOKEN-BAD-SIG, TOKEN-MALFORMED
    """
    if not token or "." not in token:                             # TOKEN-MALFORMED
        raise InvalidTokenError("Malformed token: missing separator")

    payload_b64, provided_sig = token.split(".", 1)

    expected_sig = _sign(payload_b64, secret)
    if not hmac.compare_digest(
        provided_sig.encode("utf-8"), expected_sig.encode("utf-8")
    ):                                                            # TOKEN-BAD-SIG
        raise InvalidTokenError("Invalid token: signature mismatch")

    try:
        payload = json.loads(_b64url_decode(payload_b64))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:  # TOKEN-MALFORMED
        raise InvalidTokenError(f"Malformed token: {e}") from e

    if not isinstance(payload, dict) or not payload.get("sub"):   # TOKEN-MALFORMED
        raise InvalidTokenError("Malformed token: missing subject")

    # TOKEN-VALID
    return payload


@dataclass(frozen=True)
class TokenSigner:
    """Issues and verifies tokens with one process-wide secret."""

    secret: str

    def issue(self, user: User) -> str:
        return create_token(user.id, self.secret, is_admin=user.is_admin)

    def verify(self, token: str) -> TokenPayload:
        payload = validate_token(token, self.secret)
        try:
            return TokenPayload.model_validate(payload)
        except ValueError as e:
            raise InvalidTokenError(f"Malformed token: {e}") from e
