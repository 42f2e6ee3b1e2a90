"""
Exceptions raised by the template services.

Routes never catch these; main.py registers a handler for LearnboardError that
turns them into JSON error responses with the class's status code.
"""
from typing import Optional


class LearnboardError(Exception):
    """Base exception for all Learnboard errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(LearnboardError):
    """A submitted field violates a constraint. `field` is a dotted path, e.g. options[0].phases[1].title."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.field:
            body["field"] = self.field
        return body


class NotFound(LearnboardError):
    """An identifier does not resolve to a stored row."""

    status_code = 404


class Forbidden(LearnboardError):
    """Missing identity, or the caller may not change this template."""

    status_code = 403


class StorageError(LearnboardError):
    """The database failed underneath an operation."""

    status_code = 500
