"""In-memory user store.

Stands in for the document store behind the service.  Every create runs
the record rules and enforces email uniqueness under a lock, so two
concurrent registrations for the same address cannot both land.
"""
from __future__ import annotations

import threading

from models import User, _new_id
from rules import ValidationReport, validate_user


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class DuplicateKeyError(Exception):
    """Raised when a create would break the unique email constraint."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Duplicate key: email {email!r} already exists")


class UserRecordError(Exception):
    """Raised when a record fails the stored-record rules."""

    def __init__(self, report: ValidationReport) -> None:
        self.report = report
        super().__init__(report.summary())


# ---------------------------------------------------------------------------
# User store
# ---------------------------------------------------------------------------

class UserStore:
    """In-memory store for users, keyed by id with a unique email index."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._by_email: dict[str, str] = {}  # email -> user_id
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> User | None:
        user_id = self._by_email.get(email)
        if user_id is None:
            return None
        return self._users.get(user_id)

    def find_by_id(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def create(self, name: str, email: str, password_hash: str) -> User:
        """Insert a new user and return it with its assigned id."""
        user = User(
            id=_new_id(),
            name=name,
            email=email,
            password_hash=password_hash,
            is_admin=False,
        )
        report = validate_user(user)
        if not report.passed:
            raise UserRecordError(report)

        with self._lock:
            if email in self._by_email:
                raise DuplicateKeyError(email)
            self._users[user.id] = user
            self._by_email[email] = user.id
        return user

    def delete_many(self, **filters: str) -> int:
        """Delete every user whose fields equal ``filters``; return the count.

        With no filters every user is removed.
        """
        with self._lock:
            doomed = [
                u for u in self._users.values()
                if all(getattr(u, k) == v for k, v in filters.items())
            ]
            for user in doomed:
                del self._users[user.id]
                del self._by_email[user.email]
        return len(doomed)

    def count(self) -> int:
        return len(self._users)
