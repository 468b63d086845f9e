"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in catalog/models.py -- dataclasses own domain shape; stores and routes do
the work.

Layer rule: no imports from api/, catalog/, or media/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

ROLES: frozenset[str] = frozenset({"user", "admin"})


@dataclass
class User:
    """The principal behind an authenticated request.

    email is stored lower-cased and trimmed so lookups are case-insensitive
    without a functional index.

    hashed_password never leaves the store/loader boundary: every response
    model is built field-by-field and none of them carries it.

    id is None before the record is written to the database.
    """

    name: str
    email: str
    hashed_password: str
    role: str = "user"  # "user" | "admin"
    id: str | None = None
    profile_image_url: str | None = None
    profile_image_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class IdentityClaim:
    """Decoded bearer token payload.

    Asserts an identity without having checked it against live state --
    the principal may have been deleted since the token was issued.
    """

    user_id: str
    email: str
    expires_at: datetime
