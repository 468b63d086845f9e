"""
api/payload.py -- Read a request body that may be JSON or multipart.

Register, profile edit, album create and album edit accept either a JSON
body or multipart/form-data carrying the same fields plus one image file.
read_payload() turns both into a RequestPayload so handlers validate one
dict against one Pydantic model regardless of transport.

Multipart conventions:
  - A repeated field (artists=A&artists=B) becomes a list.
  - A single value of a structured field (STRUCTURED_FIELDS) that looks like
    JSON ("[...]" or "{...}") is decoded, so nested objects such as
    personalNote can be sent as one form field.
  - Anything else stays a string, so a title of "[1]" stays "[1]";
    list-typed model fields wrap a bare string.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from json import JSONDecodeError
from typing import Any, TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError
from starlette.datastructures import UploadFile

from core.errors import InvalidRequest

M = TypeVar("M", bound=BaseModel)

# List and nested-object fields, in both spellings clients send.
STRUCTURED_FIELDS: frozenset[str] = frozenset(
    {
        "artists",
        "labels",
        "genres",
        "tags",
        "connections",
        "dimensions",
        "personalNote",
        "personal_note",
        "listeningContext",
        "listening_context",
    }
)


@dataclass
class RequestPayload:
    fields: dict[str, Any] = field(default_factory=dict)
    files: dict[str, UploadFile] = field(default_factory=dict)

    def file(self, name: str) -> UploadFile | None:
        upload = self.files.get(name)
        if upload is None or not upload.filename:
            return None
        return upload


def _decode_form_value(value: str) -> Any:
    stripped = value.strip()
    if stripped[:1] in ("[", "{"):
        try:
            return json.loads(stripped)
        except JSONDecodeError:
            return value
    return value


async def read_payload(request: Request) -> RequestPayload:
    """FastAPI dependency: parse the body into fields + uploaded files."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data") or content_type.startswith(
        "application/x-www-form-urlencoded"
    ):
        form = await request.form()
        payload = RequestPayload()
        for key in form.keys():
            values = form.getlist(key)
            uploads = [v for v in values if isinstance(v, UploadFile)]
            if uploads:
                payload.files[key] = uploads[0]
                continue
            if len(values) == 1:
                value = values[0]
                payload.fields[key] = _decode_form_value(value) if key in STRUCTURED_FIELDS else value
            else:
                payload.fields[key] = list(values)
        return payload

    raw = await request.body()
    if not raw.strip():
        return RequestPayload()
    try:
        body = json.loads(raw)
    except (JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidRequest("Malformed JSON body") from exc
    if not isinstance(body, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return RequestPayload(fields=body)


def validate_fields(model: type[M], fields: dict[str, Any]) -> M:
    """Validate fields against model, converting failures to InvalidRequest (400)."""
    try:
        return model.model_validate(fields)
    except ValidationError as exc:
        raise InvalidRequest(format_validation_error(exc)) from exc


def format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err["loc"]) or "body"
        parts.append(f"{location}: {err['msg']}")
    return "Invalid request: " + "; ".join(parts)
