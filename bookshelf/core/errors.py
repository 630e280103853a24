"""
Error taxonomy shared by the API handlers
"""

from typing import Optional


class BookshelfError(Exception):
    """Base error. Handlers convert it into a JSON error body."""
    kind = "upstream-failure"
    status_code = 500
    default_message = "internal error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class NotFound(BookshelfError):
    kind = "not-found"
    status_code = 404
    default_message = "not found"


class Unauthorized(BookshelfError):
    kind = "unauthorized"
    status_code = 403
    default_message = "unauthorized"


class BadRequest(BookshelfError):
    kind = "bad-request"
    status_code = 400
    default_message = "bad request"


class UpstreamFailure(BookshelfError):
    kind = "upstream-failure"
    status_code = 502
    default_message = "storage unavailable"
