"""
api/routes/auth.py -- Registration and login.

Routes:
  POST /auth/register  -- create a user account; JSON or multipart with an
                          optional profileImage file; 201 with the user
  POST /auth/login     -- email + password -> bearer JWT

Security:
  Both routes are rate-limited per client IP (Settings.login_rate_limit).
  authenticate_user() provides timing equalization -- use it, never inline
  get_by_email() + verify_password().
  Cache-Control: no-store on login responses.
  Registration never accepts a role; every self-registered account is "user".
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.envelope import respond
from api.limiter import limiter
from api.models import LoginData, LoginRequest, RegisterRequest, UserResponse
from api.payload import RequestPayload, read_payload, validate_fields
from auth.models import User
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token, hash_password
from core.config import get_settings
from core.errors import InvalidRequest, Unauthenticated
from media.host import AssetHost

logger = logging.getLogger("craterra.auth")

_settings = get_settings()

router = APIRouter(prefix="/auth", tags=["Auth"])


def check_password_length(password: str) -> None:
    """Raise InvalidRequest if password is shorter than the configured minimum."""
    minimum = get_settings().min_password_length
    if len(password) < minimum:
        raise InvalidRequest(f"Password must be at least {minimum} characters long")


@router.post("/register", status_code=201)
@limiter.limit(_settings.login_rate_limit)
def register(request: Request, payload: RequestPayload = Depends(read_payload)) -> JSONResponse:
    """Create a plain user account.

    The email check runs before the image upload so a rejected registration
    never reaches Cloudinary. IntegrityError covers two concurrent
    registrations of the same email that both pass the check.
    """
    user_store: UserStore = request.app.state.user_store
    host: AssetHost = request.app.state.asset_host

    body = validate_fields(RegisterRequest, payload.fields)
    check_password_length(body.password)
    if user_store.get_by_email(body.email) is not None:
        raise InvalidRequest("This user already exists")

    image = payload.file("profileImage")
    uploaded = host.upload(image.file, image.filename) if image is not None else None

    new_user = User(
        name=body.name,
        email=body.email,
        hashed_password=hash_password(body.password),
        profile_image_url=uploaded.url if uploaded else None,
        profile_image_id=uploaded.asset_id if uploaded else None,
    )
    with host.discard_on_error(uploaded):
        try:
            user_id = user_store.create_user(new_user)
        except IntegrityError as exc:
            raise InvalidRequest("This user already exists") from exc

    logger.info("Registered user %s", user_id)
    return respond(201, "User registered successfully", UserResponse.from_user(user_store.get_by_id(user_id)))


@router.post("/login")
@limiter.limit(_settings.login_rate_limit)
def login(request: Request, payload: RequestPayload = Depends(read_payload)) -> JSONResponse:
    """Exchange email and password for a bearer token.

    Unknown email and wrong password produce the same 401 so the response
    does not reveal which emails are registered.
    """
    user_store: UserStore = request.app.state.user_store
    body = validate_fields(LoginRequest, payload.fields)

    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        logger.warning("auth.login_failed client=%s", request.client.host if request.client else "unknown")
        raise Unauthenticated("Invalid credentials")

    token = create_access_token(user.id, user.email)
    resp = respond(
        200,
        "Token created successfully",
        LoginData(access_token=token, expires_in=_settings.token_expire_seconds),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
