"""
Domain errors raised by the feed and account services.

Services raise these; ``flexxion.main`` translates them into HTTP responses
so that route handlers never build error payloads themselves.
"""

from __future__ import annotations


class FeedError(Exception):
    """Base class for every error the services report to callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(FeedError, ValueError):
    """Empty or over-length text, or a malformed image reference."""

    status_code = 400


class NotFoundError(FeedError):
    """A post, comment or user id has no match."""

    status_code = 404


class AuthorizationError(FeedError):
    """The requester lacks the ownership relation the operation needs."""

    status_code = 403


class Unauthenticated(FeedError):
    """Missing, unknown or expired bearer token, or bad credentials."""

    status_code = 401


class ConflictError(FeedError):
    """A uniqueness clash, or optimistic retries that ran out.

    When ``retryable`` is set the caller may simply repeat the request.
    """

    status_code = 409

    def __init__(self, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable
        if retryable:
            self.status_code = 503
