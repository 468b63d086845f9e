"""
API request and response models for the Craterra REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py and
catalog/models.py, which own the internal domain representation. Route
handlers map between the two.

Request models accept both snake_case and camelCase keys (releaseDate,
currentPassword, ...) so JSON and multipart clients written against either
convention work. Responses are always snake_case.

Separation of concerns: domain models = storage truth; api/ models = API contract.
"""

from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from auth.models import User
from catalog.models import (
    ALBUM_FORMATS,
    CONNECTION_TYPES,
    EMOTIONAL_DIMENSIONS,
    LISTENING_FREQUENCIES,
    SONIC_DIMENSIONS,
    Album,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

AlbumFormat = Literal[ALBUM_FORMATS]
EmotionalDimension = Literal[EMOTIONAL_DIMENSIONS]
SonicDimension = Literal[SONIC_DIMENSIONS]
ConnectionType = Literal[CONNECTION_TYPES]
ListeningFrequency = Literal[LISTENING_FREQUENCIES]


class _RequestModel(BaseModel):
    """Shared config for request bodies: strip strings, accept camelCase, ignore extras."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _as_list(value: Any) -> Any:
    """A single multipart form value arrives as a bare string; wrap it."""
    if isinstance(value, str):
        return [value]
    return value


# ---------------------------------------------------------------------------
# Auth / users -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(_RequestModel):
    """Request body for POST /auth/register.

    There is no role field: every self-registered account is a plain user.
    Admins are created from the CLI (main.py create-admin).
    """

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class LoginRequest(_RequestModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class ProfileUpdate(_RequestModel):
    """Request body for PUT /users/me. role and password are rejected upstream."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN, max_length=255)


class ChangePasswordRequest(_RequestModel):
    """Request body for PUT /users/change-password.

    Fields are optional here so a missing one produces the specific
    "All fields are required" message instead of a generic validation error.
    """

    current_password: Optional[str] = Field(default=None, max_length=128)
    new_password: Optional[str] = Field(default=None, max_length=128)
    confirm_password: Optional[str] = Field(default=None, max_length=128)


# ---------------------------------------------------------------------------
# Albums -- request models
# ---------------------------------------------------------------------------


class PersonalNoteIn(_RequestModel):
    content: str = Field(default="", max_length=10_000)


class DimensionsIn(_RequestModel):
    emotional: list[EmotionalDimension] = Field(default_factory=list)
    sonic: list[SonicDimension] = Field(default_factory=list)


class ConnectionIn(_RequestModel):
    album: str = Field(min_length=1, max_length=64)
    type: ConnectionType
    note: Optional[str] = Field(default=None, max_length=1000)


class ListeningContextIn(_RequestModel):
    first_listen: Optional[datetime] = None
    last_listen: Optional[datetime] = None
    frequency: Optional[ListeningFrequency] = None
    context: Optional[str] = Field(default=None, max_length=1000)


class AlbumFields(_RequestModel):
    """Optional album fields shared by create and update."""

    format: Optional[AlbumFormat] = None
    release_date: Optional[date] = None
    labels: list[str] = Field(default_factory=list, max_length=50)
    genres: list[str] = Field(default_factory=list, max_length=50)
    tags: list[str] = Field(default_factory=list, max_length=50)
    personal_note: Optional[PersonalNoteIn] = None
    dimensions: Optional[DimensionsIn] = None
    connections: list[ConnectionIn] = Field(default_factory=list, max_length=100)
    listening_context: Optional[ListeningContextIn] = None

    @field_validator("labels", "genres", "tags", mode="before")
    @classmethod
    def wrap_single_value(cls, value: Any) -> Any:
        return _as_list(value)


class AlbumCreate(AlbumFields):
    """Request body for POST /albums."""

    title: str = Field(min_length=1, max_length=500)
    artists: list[str] = Field(min_length=1, max_length=50)

    @field_validator("artists", mode="before")
    @classmethod
    def wrap_single_artist(cls, value: Any) -> Any:
        return _as_list(value)

    @field_validator("artists")
    @classmethod
    def artists_not_blank(cls, values: list[str]) -> list[str]:
        if any(not a for a in values):
            raise ValueError("artist names must not be empty")
        return values


class AlbumUpdate(AlbumFields):
    """Request body for PUT /albums/{id}. Only fields present in the body are written."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    artists: Optional[list[str]] = Field(default=None, min_length=1, max_length=50)

    @field_validator("artists", mode="before")
    @classmethod
    def wrap_single_artist(cls, value: Any) -> Any:
        return _as_list(value)

    @field_validator("artists")
    @classmethod
    def artists_not_blank(cls, values: Optional[list[str]]) -> Optional[list[str]]:
        if values is not None and any(not a for a in values):
            raise ValueError("artist names must not be empty")
        return values


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    role: str
    profile_image_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            profile_image_url=user.profile_image_url,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class OwnerSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str


class AlbumResponse(BaseModel):
    """Public view of an album. The normalized comparison fields stay internal."""

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    title: str
    artists: list[str]
    format: Optional[str] = None
    release_date: Optional[str] = None
    labels: list[str] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    cover_art_url: Optional[str] = None
    personal_note: dict = Field(default_factory=dict)
    dimensions: dict = Field(default_factory=dict)
    connections: list[dict] = Field(default_factory=list)
    listening_context: dict = Field(default_factory=dict)
    created_at: str
    updated_at: str

    @classmethod
    def from_album(cls, album: Album) -> "AlbumResponse":
        return cls(
            id=album.id,
            owner_id=album.owner_id,
            title=album.title,
            artists=album.artists,
            format=album.format,
            release_date=album.release_date,
            labels=album.labels,
            genres=album.genres,
            tags=album.tags,
            cover_art_url=album.cover_art_url,
            personal_note=album.personal_note,
            dimensions=album.dimensions,
            connections=album.connections,
            listening_context=album.listening_context,
            created_at=album.created_at,
            updated_at=album.updated_at,
        )


class AdminAlbumResponse(AlbumResponse):
    """Album row in the admin listing, with the owner's name and email attached."""

    owner: Optional[OwnerSummary] = None


class LoginData(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class HealthData(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str
    version: str
    components: dict[str, str]
