"""
api/routes/albums.py -- The authenticated user's own album collection.

Routes:
  GET    /albums             -- caller's albums, newest first
  POST   /albums             -- create; JSON or multipart with optional coverArt
  GET    /albums/{album_id}  -- owner only
  PUT    /albums/{album_id}  -- owner only; partial update, new coverArt replaces old
  DELETE /albums/{album_id}  -- owner only; cover image removed best-effort

Auth policy:
  Every route requires a principal (require_user). The {album_id} routes
  also pass the ownership gate (require_album_owner), which hands the handler
  the already-loaded album in ctx.album.
  ctx is declared before the body dependency in every handler, so the body
  is read only once the guards have passed.

Duplicate rule:
  An owner may not hold two albums with the same normalized title and the
  same multiset of normalized artists. Checked before any image upload on
  create, and on update whenever title or artists change.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.envelope import respond
from api.models import AlbumCreate, AlbumFields, AlbumResponse, AlbumUpdate
from api.payload import RequestPayload, read_payload, validate_fields
from auth.dependencies import RequestContext, require_album_owner, require_user
from catalog.identity import is_duplicate
from catalog.models import Album
from catalog.store import AlbumStore
from core.errors import Forbidden, InvalidRequest
from media.host import AssetHost

logger = logging.getLogger("craterra.api")

router = APIRouter(prefix="/albums", tags=["Albums"])

DUPLICATE_MESSAGE = "This album already exists in your collection"

# Any of these in an update body is an attempt to move the album to another user.
_OWNER_KEYS = frozenset({"owner_id", "ownerId", "owner", "addedBy"})


def personal_note(content: str) -> dict:
    """Build the stored personal note; word count and edit time are server-side."""
    return {
        "content": content,
        "last_edited": datetime.now(timezone.utc).isoformat(),
        "word_count": len(content.split()),
    }


def album_values(body: AlbumFields) -> dict:
    """Map the fields the client actually sent to AlbumStore column values."""
    if not body.model_fields_set:
        return {}
    values = body.model_dump(mode="json", include=body.model_fields_set)
    if "personal_note" in values:
        note = values["personal_note"] or {}
        values["personal_note"] = personal_note(note.get("content", ""))
    for key in ("dimensions", "listening_context"):
        if key in values and values[key] is None:
            values[key] = {}
    for key in ("title", "artists"):
        if key in values and values[key] is None:
            del values[key]
    return values


@router.get("")
def list_my_albums(request: Request, ctx: RequestContext = Depends(require_user)) -> JSONResponse:
    album_store: AlbumStore = request.app.state.album_store
    albums = album_store.list_albums_by_owner(ctx.principal.id)
    if not albums:
        return respond(200, "You haven't added any albums yet", [])
    return respond(200, "Albums fetched successfully", [AlbumResponse.from_album(a) for a in albums])


@router.post("", status_code=201)
def create_album(
    request: Request,
    ctx: RequestContext = Depends(require_user),
    payload: RequestPayload = Depends(read_payload),
) -> JSONResponse:
    """Add an album to the caller's collection.

    The owner is always the principal; an owner field in the body is ignored.
    """
    album_store: AlbumStore = request.app.state.album_store
    host: AssetHost = request.app.state.asset_host

    body = validate_fields(AlbumCreate, payload.fields)
    if is_duplicate(album_store, ctx.principal.id, body.title, body.artists):
        raise InvalidRequest(DUPLICATE_MESSAGE)

    cover = payload.file("coverArt")
    uploaded = host.upload(cover.file, cover.filename) if cover is not None else None

    album = Album(
        owner_id=ctx.principal.id,
        cover_art_url=uploaded.url if uploaded else None,
        cover_art_id=uploaded.asset_id if uploaded else None,
        **album_values(body),
    )
    with host.discard_on_error(uploaded):
        album_id = album_store.create_album(album)

    logger.info("Album %s created by %s", album_id, ctx.principal.id)
    return respond(201, "Album created successfully", AlbumResponse.from_album(album_store.get_album(album_id)))


@router.get("/{album_id}")
def get_album(ctx: RequestContext = Depends(require_album_owner)) -> JSONResponse:
    return respond(200, "Album fetched successfully", AlbumResponse.from_album(ctx.album))


@router.put("/{album_id}")
def update_album(
    request: Request,
    ctx: RequestContext = Depends(require_album_owner),
    payload: RequestPayload = Depends(read_payload),
) -> JSONResponse:
    """Apply a partial update to an album the caller owns.

    Only fields present in the body are written. The previous cover image is
    deleted after the new one is saved, never before.
    """
    album_store: AlbumStore = request.app.state.album_store
    host: AssetHost = request.app.state.asset_host
    album = ctx.album

    if _OWNER_KEYS & payload.fields.keys():
        raise Forbidden("You are not allowed to change the album owner")

    values = album_values(validate_fields(AlbumUpdate, payload.fields))
    if "title" in values or "artists" in values:
        title = values.get("title", album.title)
        artists = values.get("artists", album.artists)
        if is_duplicate(album_store, album.owner_id, title, artists, exclude_id=album.id):
            raise InvalidRequest(DUPLICATE_MESSAGE)

    cover = payload.file("coverArt")
    uploaded = host.upload(cover.file, cover.filename) if cover is not None else None
    if uploaded is not None:
        values["cover_art_url"] = uploaded.url
        values["cover_art_id"] = uploaded.asset_id

    with host.discard_on_error(uploaded):
        album_store.update_album(album.id, **values)
    if uploaded is not None:
        host.delete(album.cover_art_id)

    return respond(200, "Album updated successfully", AlbumResponse.from_album(album_store.get_album(album.id)))


@router.delete("/{album_id}")
def delete_album(request: Request, ctx: RequestContext = Depends(require_album_owner)) -> JSONResponse:
    album_store: AlbumStore = request.app.state.album_store
    host: AssetHost = request.app.state.asset_host

    album_store.delete_album(ctx.album.id)
    host.delete(ctx.album.cover_art_id)
    logger.info("Album %s deleted by owner %s", ctx.album.id, ctx.principal.id)
    return respond(200, "Album deleted successfully", AlbumResponse.from_album(ctx.album))
