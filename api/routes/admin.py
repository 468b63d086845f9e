"""
api/routes/admin.py -- Moderation endpoints for the admin role.

Routes:
  GET    /admin/albums             -- every album, with its owner's id/name/email
  GET    /admin/users              -- every user
  DELETE /admin/albums/{album_id}  -- delete any album; 404 if missing
  DELETE /admin/users/{user_id}    -- delete any user; 404 if missing

The role gate is attached to the router, so every route here runs
authenticate -> load principal -> require role "admin" before the handler.
No ownership gate: admins act on anyone's records.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.envelope import respond
from api.models import AdminAlbumResponse, AlbumResponse, OwnerSummary, UserResponse
from auth.dependencies import RequestContext, require_admin
from auth.store import UserStore
from catalog.store import AlbumStore
from core.errors import NotFound
from media.host import AssetHost

logger = logging.getLogger("craterra.api")

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/albums")
def list_all_albums(request: Request) -> JSONResponse:
    """Every album in the catalog, newest first.

    Owners are resolved from one list_users() call. An album whose owner was
    deleted is returned with owner = null.
    """
    album_store: AlbumStore = request.app.state.album_store
    user_store: UserStore = request.app.state.user_store

    owners = {
        u.id: OwnerSummary(id=u.id, name=u.name, email=u.email) for u in user_store.list_users()
    }
    data = [
        AdminAlbumResponse(
            **AlbumResponse.from_album(a).model_dump(),
            owner=owners.get(a.owner_id),
        )
        for a in album_store.list_albums()
    ]
    return respond(200, "Albums fetched successfully", data)


@router.get("/users")
def list_all_users(request: Request) -> JSONResponse:
    user_store: UserStore = request.app.state.user_store
    return respond(200, "Users fetched successfully", [UserResponse.from_user(u) for u in user_store.list_users()])


@router.delete("/albums/{album_id}")
def delete_any_album(request: Request, album_id: str) -> JSONResponse:
    album_store: AlbumStore = request.app.state.album_store
    host: AssetHost = request.app.state.asset_host

    album = album_store.get_album(album_id)
    if album is None:
        raise NotFound("Album not found")
    album_store.delete_album(album.id)
    host.delete(album.cover_art_id)
    logger.info("Admin removed album %s (owner %s)", album.id, album.owner_id)
    return respond(200, "Album deleted successfully", AlbumResponse.from_album(album))


@router.delete("/users/{user_id}")
def delete_any_user(
    request: Request,
    user_id: str,
    ctx: RequestContext = Depends(require_admin),
) -> JSONResponse:
    """Delete a user account. Their albums are left in place."""
    user_store: UserStore = request.app.state.user_store
    host: AssetHost = request.app.state.asset_host

    user = user_store.get_by_id(user_id)
    if user is None:
        raise NotFound("User not found")
    user_store.delete_user(user.id)
    host.delete(user.profile_image_id)
    logger.info("Admin %s removed user %s", ctx.principal.id, user.id)
    return respond(200, "User deleted successfully", UserResponse.from_user(user))
