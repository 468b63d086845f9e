"""
auth/dependencies.py -- The request authorization pipeline as FastAPI Depends() helpers.

Every protected request walks the same stages, strictly in order, and each
stage raises on failure so later stages never run:

  NoToken -> TokenVerified -> PrincipalResolved -> RoleChecked (optional)
          -> OwnershipChecked (optional) -> Authorized

  1. extract_bearer_token()  -- "Authorization: Bearer <token>" must be present
  2. decode_access_token()   -- signature + expiry (auth/tokens.py)
  3. load_principal()        -- the claim's user must still exist
  4. authorize_role()        -- empty role set means "any authenticated user"
  5. authorize_ownership()   -- album must exist and belong to the principal

The result is a RequestContext value handed to the route handler. Nothing is
stashed on request.state; handlers receive exactly what the pipeline resolved.

The pure stage functions (load_principal, authorize_role, authorize_ownership)
take their store explicitly so they can be unit-tested without FastAPI.

Use as FastAPI dependencies:
    @router.get("/albums")
    def route(ctx: RequestContext = Depends(require_user)): ...

    @router.get("/albums/{album_id}")
    def route(ctx: RequestContext = Depends(require_album_owner)): ...  # ctx.album is loaded

    router = APIRouter(dependencies=[Depends(require_admin)])
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection
from dataclasses import dataclass, replace

from fastapi import Depends, Request

from auth.models import IdentityClaim, User
from auth.store import UserStore
from auth.tokens import decode_access_token
from catalog.models import Album
from catalog.store import AlbumStore
from core.errors import Forbidden, NotFound, Unauthenticated

logger = logging.getLogger("craterra.auth")

_BEARER_PREFIX = "Bearer "


class PrincipalNotFound(Unauthenticated):
    """The token is valid but its user no longer exists."""

    default_message = "Unauthorized: No user found in request"


@dataclass(frozen=True)
class RequestContext:
    """What the pipeline resolved for one request."""

    principal: User
    album: Album | None = None


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------


def extract_bearer_token(authorization: str | None) -> str:
    """Return the raw token from an Authorization header value."""
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        raise Unauthenticated("No token provided")
    token = authorization[len(_BEARER_PREFIX) :].strip()
    if not token:
        raise Unauthenticated("No token provided")
    return token


def load_principal(store: UserStore, claim: IdentityClaim) -> User:
    """Resolve a decoded claim to the live user record."""
    user = store.get_by_id(claim.user_id)
    if user is None:
        raise PrincipalNotFound()
    return user


def authorize_role(principal: User, allowed_roles: Collection[str]) -> None:
    """Pass if allowed_roles is empty or contains the principal's role."""
    if allowed_roles and principal.role not in allowed_roles:
        raise Forbidden(f"Access denied for role: {principal.role}")


def authorize_ownership(store: AlbumStore, principal: User, album_id: str) -> Album:
    """Load an album and return it only if principal owns it.

    The ownership check and the data fetch share one lookup; the handler
    receives the album and does not query again.
    """
    album = store.get_album(album_id)
    if album is None:
        raise NotFound("Album not found")
    if album.owner_id != principal.id:
        raise Forbidden("Not authorized")
    return album


# ---------------------------------------------------------------------------
# FastAPI wiring
# ---------------------------------------------------------------------------


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_album_store(request: Request) -> AlbumStore:
    return request.app.state.album_store


def authenticate(
    request: Request,
    user_store: UserStore = Depends(get_user_store),
) -> RequestContext:
    """Stages 1-3: token present, token valid, principal exists."""
    try:
        token = extract_bearer_token(request.headers.get("Authorization"))
        claim = decode_access_token(token)
        principal = load_principal(user_store, claim)
    except Unauthenticated as exc:
        logger.warning(
            "auth.rejected method=%s path=%s reason=%s",
            request.method,
            request.url.path,
            exc.message,
        )
        raise
    return RequestContext(principal=principal)


def require_roles(*roles: str) -> Callable[..., RequestContext]:
    """Build a dependency that authenticates and then applies the role gate."""
    allowed = frozenset(roles)

    def dependency(ctx: RequestContext = Depends(authenticate)) -> RequestContext:
        authorize_role(ctx.principal, allowed)
        return ctx

    return dependency


require_user = require_roles()
require_admin = require_roles("admin")


def require_album_owner(
    album_id: str,
    ctx: RequestContext = Depends(require_user),
    album_store: AlbumStore = Depends(get_album_store),
) -> RequestContext:
    """Stage 5: runs only after the principal is resolved."""
    album = authorize_ownership(album_store, ctx.principal, album_id)
    return replace(ctx, album=album)
