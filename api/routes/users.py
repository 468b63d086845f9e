"""
api/routes/users.py -- The authenticated user's own profile.

Routes:
  GET    /users/me               -- current profile
  PUT    /users/me               -- edit name/email, optional new profileImage
  PUT    /users/change-password  -- currentPassword/newPassword/confirmPassword
  DELETE /users/me               -- delete own account and profile image

Role and password are never writable through PUT /users/me. Password changes
go through /users/change-password, which re-checks the current password and
writes nothing unless every check passes.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.envelope import respond
from api.models import ChangePasswordRequest, ProfileUpdate, UserResponse
from api.payload import RequestPayload, read_payload, validate_fields
from api.routes.auth import check_password_length
from auth.dependencies import RequestContext, require_user
from auth.store import UserStore, normalize_email
from auth.tokens import hash_password, verify_password
from core.errors import Forbidden, InvalidRequest, NotFound, Unauthenticated
from media.host import AssetHost

logger = logging.getLogger("craterra.api")

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me")
def get_me(ctx: RequestContext = Depends(require_user)) -> JSONResponse:
    return respond(200, "User fetched successfully", UserResponse.from_user(ctx.principal))


@router.put("/me")
def update_me(
    request: Request,
    ctx: RequestContext = Depends(require_user),
    payload: RequestPayload = Depends(read_payload),
) -> JSONResponse:
    """Edit the caller's name, email or profile image."""
    user_store: UserStore = request.app.state.user_store
    host: AssetHost = request.app.state.asset_host
    user = ctx.principal

    if "role" in payload.fields:
        raise Forbidden("You are not allowed to change your role")
    if "password" in payload.fields:
        raise Forbidden("You are not allowed to change your password here. Use /users/change-password instead")

    body = validate_fields(ProfileUpdate, payload.fields)
    updates: dict = {}
    if body.name:
        updates["name"] = body.name
    if body.email and normalize_email(body.email) != user.email:
        holder = user_store.get_by_email(body.email)
        if holder is not None and holder.id != user.id:
            raise InvalidRequest("This email is already in use")
        updates["email"] = body.email

    image = payload.file("profileImage")
    uploaded = host.upload(image.file, image.filename) if image is not None else None
    if uploaded is not None:
        updates["profile_image_url"] = uploaded.url
        updates["profile_image_id"] = uploaded.asset_id

    with host.discard_on_error(uploaded):
        try:
            user_store.update_user(user.id, **updates)
        except IntegrityError as exc:
            raise InvalidRequest("This email is already in use") from exc
    if uploaded is not None:
        host.delete(user.profile_image_id)

    return respond(200, "Profile updated successfully", UserResponse.from_user(user_store.get_by_id(user.id)))


@router.put("/change-password")
def change_password(
    request: Request,
    ctx: RequestContext = Depends(require_user),
    payload: RequestPayload = Depends(read_payload),
) -> JSONResponse:
    """Replace the caller's password.

    Check order: all fields present, new passwords match, current password
    correct, new password long enough. Nothing is written on failure.
    """
    user_store: UserStore = request.app.state.user_store
    body = validate_fields(ChangePasswordRequest, payload.fields)

    if not (body.current_password and body.new_password and body.confirm_password):
        raise InvalidRequest("All fields are required")
    if body.new_password != body.confirm_password:
        raise InvalidRequest("New passwords do not match")
    if not verify_password(body.current_password, ctx.principal.hashed_password):
        raise Unauthenticated("Current password is incorrect")
    check_password_length(body.new_password)

    if not user_store.update_user(ctx.principal.id, hashed_password=hash_password(body.new_password)):
        raise NotFound("User not found")
    logger.info("Password changed for user %s", ctx.principal.id)
    return respond(200, "Password changed successfully")


@router.delete("/me")
def delete_me(request: Request, ctx: RequestContext = Depends(require_user)) -> JSONResponse:
    """Delete the caller's account. Their albums are left in place."""
    user_store: UserStore = request.app.state.user_store
    host: AssetHost = request.app.state.asset_host

    if not user_store.delete_user(ctx.principal.id):
        raise NotFound("User not found")
    host.delete(ctx.principal.profile_image_id)
    logger.info("User %s deleted own account", ctx.principal.id)
    return respond(200, "Account deleted successfully", UserResponse.from_user(ctx.principal))
