"""Validation rules for the user accounts service.

Two rule sets live here:

- ``REGISTRATION_RULES`` check an inbound registration payload before
  anything touches the store.  They are pure and report every violation,
  field by field.
- ``USER_RULES`` check a stored ``User`` record.  The store runs them on
  every create so a malformed record can never be persisted.

``BRANCHES`` lists every decision point in the implementation.  The
white-box tests keep a coverage matrix keyed by these ids.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

from email_validator import EmailNotValidError, validate_email

# ---------------------------------------------------------------------------
# Field limits
# ---------------------------------------------------------------------------

MIN_NAME_LENGTH = 5
MAX_NAME_LENGTH = 50
MIN_EMAIL_LENGTH = 5
MAX_EMAIL_LENGTH = 255
MIN_PASSWORD_LENGTH = 5
MAX_PASSWORD_LENGTH = 255


# ---------------------------------------------------------------------------
# Rule: a named, executable predicate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Rule:
    """A named validation rule.

    ``field`` is the payload key (or record attribute) the rule inspects.
    """

    id: str
    field: str
    description: str
    check: Callable[[Any], bool]


# ---------------------------------------------------------------------------
# Registration payload rules
# ---------------------------------------------------------------------------

def _is_str(v: Any) -> bool:
    return isinstance(v, str)


def _is_text(v: Any) -> bool:
    """A string that encodes as UTF-8 (no lone surrogates)."""
    if not _is_str(v):
        return False
    try:
        v.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _length_between(lo: int, hi: int) -> Callable[[Any], bool]:
    def check(v: Any) -> bool:
        return _is_text(v) and lo <= len(v) <= hi
    return check


def _is_email(v: Any) -> bool:
    if not _is_text(v):
        return False
    try:
        validate_email(v, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


REGISTRATION_RULES: list[Rule] = [
    Rule(
        id="NAME-REQUIRED",
        field="name",
        description='"name" is required',
        check=_is_str,
    ),
    Rule(
        id="NAME-ENCODING",
        field="name",
        description='"name" must be valid UTF-8 text',
        check=_is_text,
    ),
    Rule(
        id="NAME-LENGTH",
        field="name",
        description=(
            f'"name" length must be between {MIN_NAME_LENGTH} '
            f"and {MAX_NAME_LENGTH} characters"
        ),
        check=_length_between(MIN_NAME_LENGTH, MAX_NAME_LENGTH),
    ),
    Rule(
        id="EMAIL-REQUIRED",
        field="email",
        description='"email" is required',
        check=_is_str,
    ),
    Rule(
        id="EMAIL-ENCODING",
        field="email",
        description='"email" must be valid UTF-8 text',
        check=_is_text,
    ),
    Rule(
        id="EMAIL-LENGTH",
        field="email",
        description=(
            f'"email" length must be between {MIN_EMAIL_LENGTH} '
            f"and {MAX_EMAIL_LENGTH} characters"
        ),
        check=_length_between(MIN_EMAIL_LENGTH, MAX_EMAIL_LENGTH),
    ),
    Rule(
        id="EMAIL-FORMAT",
        field="email",
        description='"email" must be a valid email',
        check=_is_email,
    ),
    Rule(
        id="PASSWORD-REQUIRED",
        field="password",
        description='"password" is required',
        check=_is_str,
    ),
    Rule(
        id="PASSWORD-ENCODING",
        field="password",
        description='"password" must be valid UTF-8 text',
        check=_is_text,
    ),
    Rule(
        id="PASSWORD-LENGTH",
        field="password",
        description=(
            f'"password" length must be between {MIN_PASSWORD_LENGTH} '
            f"and {MAX_PASSWORD_LENGTH} characters"
        ),
        check=_length_between(MIN_PASSWORD_LENGTH, MAX_PASSWORD_LENGTH),
    ),
]


# ---------------------------------------------------------------------------
# Stored record rules
# ---------------------------------------------------------------------------

def _user_has_id(u: Any) -> bool:
    return bool(getattr(u, "id", None))


def _user_has_email(u: Any) -> bool:
    return bool(getattr(u, "email", ""))


def _user_has_password_hash(u: Any) -> bool:
    h = getattr(u, "password_hash", "")
    return bool(h and "$" in h)


def _user_is_admin_is_bool(u: Any) -> bool:
    return isinstance(getattr(u, "is_admin", None), bool)


USER_RULES: list[Rule] = [
    Rule(
        id="USER-ID",
        field="id",
        description="User must have a non-empty id",
        check=_user_has_id,
    ),
    Rule(
        id="USER-EMAIL",
        field="email",
        description="User must have a non-empty email",
        check=_user_has_email,
    ),
    Rule(
        id="USER-HASH",
        field="password_hash",
        description="User must have a password hash in salt$hash format",
        check=_user_has_password_hash,
    ),
    Rule(
        id="USER-ADMIN-FLAG",
        field="is_admin",
        description="is_admin field must be a boolean",
        check=_user_is_admin_is_bool,
    ),
]


# ---------------------------------------------------------------------------
# Validation report
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ValidationResult:
    rule_id: str
    field: str
    passed: bool
    description: str


@dataclass(frozen=True)
class ValidationReport:
    results: list[ValidationResult]

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def failures(self) -> list[ValidationResult]:
        return [r for r in self.results if not r.passed]

    def violations(self) -> list[dict[str, str]]:
        """Field-level violations, shaped for a client-facing error body.

        Only the first failure per field is reported; a missing field
        would otherwise also fail every length and format rule.
        """
        seen: set[str] = set()
        out: list[dict[str, str]] = []
        for f in self.failures:
            if f.field in seen:
                continue
            seen.add(f.field)
            out.append(
                {"field": f.field, "rule": f.rule_id, "message": f.description}
            )
        return out

    def summary(self) -> str:
        total = len(self.results)
        failed = len(self.failures)
        if failed == 0:
            return f"All {total} rules passed"
        return "; ".join(v["message"] for v in self.violations())


def _run(rules: list[Rule], value_for: Callable[[Rule], Any]) -> ValidationReport:
    results = []
    for rule in rules:
        try:
            passed = bool(rule.check(value_for(rule)))
        except Exception:
            passed = False
        results.append(
            ValidationResult(
                rule_id=rule.id,
                field=rule.field,
                passed=passed,
                description=rule.description,
            )
        )
    return ValidationReport(results=results)


def validate_registration(payload: Mapping[str, Any]) -> ValidationReport:
    """Run every registration rule against a raw payload."""
    return _run(REGISTRATION_RULES, lambda rule: payload.get(rule.field))


def validate_user(user: Any) -> ValidationReport:
    """Run every record rule against a user and return a report."""
    return _run(USER_RULES, lambda rule: user)


# ---------------------------------------------------------------------------
# Branch registry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Branch:
    """A decision point in the implementation that tests must exercise."""

    id: str
    description: str
    condition: str
    operation: str


BRANCHES: list[Branch] = [
    # Password hashing
    Branch("PWD-EMPTY", "Empty password rejected", "password == ''", "hash_password"),
    Branch("PWD-VALID", "Password hashed", "password != ''", "hash_password"),
    # Password verification
    Branch("VERIFY-MATCH", "Password matches stored hash",
           "computed == stored", "verify_password"),
    Branch("VERIFY-MISMATCH", "Password does not match stored hash",
           "computed != stored", "verify_password"),
    Branch("VERIFY-BAD-FMT", "Stored hash has invalid format",
           "'$' not in stored_hash or bad hex", "verify_password"),
    # Token creation
    Branch("TOKEN-CREATE-OK", "Token created", "sub and secret given",
           "create_token"),
    Branch("TOKEN-CREATE-NO-SUB", "Token creation rejected: empty subject",
           "sub == ''", "create_token"),
    Branch("TOKEN-CREATE-NO-SECRET", "Token creation rejected: empty secret",
           "secret == ''", "create_token"),
    # Token validation
    Branch("TOKEN-VALID", "Token passes every check",
           "signature valid and payload well formed", "validate_token"),
    Branch("TOKEN-BAD-SIG", "Token rejected: signature mismatch",
           "computed_sig != token_sig", "validate_token"),
    Branch("TOKEN-MALFORMED", "Token rejected: cannot decode/parse",
           "no dot, bad base64, bad JSON or missing sub", "validate_token"),
    # Registration
    Branch("REG-INVALID", "Registration rejected: payload invalid",
           "validate_registration fails", "register"),
    Branch("REG-DUP", "Registration rejected: email already registered",
           "find_by_email returns a user", "register"),
    Branch("REG-RACE", "Registration rejected: store uniqueness constraint",
           "create raises DuplicateKeyError", "register"),
    Branch("REG-SUCCESS", "New user registered", "all checks pass", "register"),
    # Authorization gate
    Branch("AUTHZ-NO-TOKEN", "No auth token provided",
           "x-auth-token header missing", "get_current_user"),
    Branch("AUTHZ-INVALID-TOKEN", "Auth token is invalid",
           "validate_token raises", "get_current_user"),
    Branch("AUTHZ-OK", "Caller resolved from token", "token valid",
           "get_current_user"),
]
