"""
auth/tokens.py -- Credential verifier: JWT issue/verify and password hashing.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       the user id (sub), email, and expiry. decode_access_token() raises
       InvalidToken on any failure -- a bad signature, a malformed token, an
       expired token, or a payload missing sub/email. No other exception type
       escapes it, so the pipeline only ever has one failure to translate.

  Passwords: bcrypt directly. The _DUMMY_HASH constant enables timing
       equalization in authenticate_user() so response time does not reveal
       whether an email is registered.

  SECRET_KEY: passed in as secret_key by callers that hold their own
       configuration; when omitted, read from core.config.get_settings() at
       call time. The Settings class validates the key at startup.

Layer rule: no imports from api/, catalog/, or media/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import IdentityClaim
from core.config import get_settings
from core.errors import Unauthenticated

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("craterra.auth")

_ALGORITHM = "HS256"


class InvalidToken(Unauthenticated):
    """Raised when a bearer token cannot be verified."""

    default_message = "Invalid or expired token"


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes; the API layer caps password
    fields at 128 characters.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("craterra_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(
    user_id: str,
    email: str,
    expire_seconds: int = 0,
    secret_key: str | None = None,
) -> str:
    """Encode a signed JWT carrying the user's id and email.

    Args:
        user_id:        Store-assigned user id, used as the sub claim.
        email:          Email at issue time. Informational only -- the loader
                        always re-reads the live record by id.
        expire_seconds: Token lifetime. If 0 (default), uses
                        Settings.token_expire_seconds.
        secret_key:     Signing key. If None, uses Settings.secret_key.
    """
    settings = get_settings()
    duration = expire_seconds if expire_seconds > 0 else settings.token_expire_seconds
    expire = datetime.now(timezone.utc) + timedelta(seconds=duration)
    payload = {
        "sub": user_id,
        "email": email,
        "exp": expire,
    }
    return jwt.encode(payload, secret_key or settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str, secret_key: str | None = None) -> IdentityClaim:
    """Verify a JWT and return its identity claim.

    secret_key defaults to Settings.secret_key. Raises InvalidToken for every
    failure mode.
    """
    key = secret_key or get_settings().secret_key
    try:
        payload = jwt.decode(token, key, algorithms=[_ALGORITHM])
    except JWTError as exc:
        raise InvalidToken() from exc

    user_id = payload.get("sub")
    email = payload.get("email")
    exp = payload.get("exp")
    if not user_id or not email or exp is None:
        raise InvalidToken("Token payload is incomplete")
    return IdentityClaim(
        user_id=str(user_id),
        email=email,
        expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
    )


# ---------------------------------------------------------------------------
# Login (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
