"""
api/envelope.py -- The one response shape every endpoint returns.

    {"success": bool, "message": str, "data": ...}

data is left out entirely when there is nothing to send (None). An empty
list is still data: GET /albums for a new user returns "data": [].
"""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def respond(status_code: int, message: str, data: Any = None, *, success: bool = True) -> JSONResponse:
    content: dict[str, Any] = {"success": success, "message": message}
    if data is not None:
        content["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=status_code, content=content)


def fail(status_code: int, message: str) -> JSONResponse:
    return respond(status_code, message, success=False)
