"""Domain errors raised by the auth core and services.

Learn: Services never import FastAPI. They raise these exceptions and
the API layer turns them into HTTP responses (see svipp.main). Each
class carries its status code and the message that is safe to show to
the caller — internal detail goes to the logs, not into `public_detail`.
"""

from typing import Optional


class SvippError(Exception):
    """Base class for expected, caller-recoverable errors."""

    status_code: int = 500
    public_detail: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.public_detail)
        if detail is not None:
            self.public_detail = detail


class ConfigurationError(Exception):
    """Missing or invalid secret material. Fatal at startup."""


class ConflictError(SvippError):
    """Unique constraint violated (email or phone already in use)."""

    status_code = 409
    public_detail = "Conflict"

    def __init__(self, field: str, detail: Optional[str] = None):
        self.field = field
        super().__init__(detail or f"{_FIELD_LABELS.get(field, field)} already in use")


class InvalidCredentialsError(SvippError):
    """Login failed. Deliberately says nothing about *why*."""

    status_code = 401
    public_detail = "Invalid credentials"

    def __init__(self):
        super().__init__()


class ForbiddenError(SvippError):
    """Authenticated, but not allowed to touch this resource."""

    status_code = 403
    public_detail = "Forbidden"

    def __init__(self):
        super().__init__()


class NotFoundError(SvippError):
    status_code = 404
    public_detail = "Not found"

    def __init__(self, kind: str, ident: object):
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} {ident} not found")


class IncorrectPasswordError(SvippError):
    """Current password did not verify during a password change."""

    status_code = 400
    public_detail = "Incorrect password"

    def __init__(self):
        super().__init__()


_FIELD_LABELS = {
    "email": "Email",
    "phone_number": "Phone number",
}
