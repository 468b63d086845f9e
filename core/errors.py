"""
core/errors.py -- Typed error taxonomy shared by every layer.

Every component signals failure by raising one of these. Nothing below the
route layer builds HTTP responses; the single exception handler registered in
api/main.py turns an ApiError into the standard response envelope using the
status_code and message carried on the instance.

  Unauthenticated (401) -- missing/invalid/expired token, wrong password,
                           principal no longer exists
  Forbidden       (403) -- role mismatch, non-owner access, restricted field edit
  NotFound        (404) -- unknown route, unknown principal or album id
  InvalidRequest  (400) -- duplicate album, malformed payload, password mismatch
  Unexpected      (500) -- storage / asset-host failures and everything else

Layer rule: core/ is the kernel. No imports from api/, auth/, catalog/, media/.
"""


class ApiError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code: int = 500
    default_message: str = "Unexpected error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class InvalidRequest(ApiError):
    status_code = 400
    default_message = "Invalid request"


class Unexpected(ApiError):
    status_code = 500
    default_message = "Unexpected error"
