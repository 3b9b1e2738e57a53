"""Domain exceptions shared by services and the API layer.

Every error carries a stable machine-checkable ``kind`` and the HTTP status
the API reports it with. Services raise these; the exception handlers in
``underkover.main`` render them as ``{"detail": ..., "kind": ...}``.
"""

from __future__ import annotations

from fastapi import status


class UnderkoverError(Exception):
    """Base class for errors reported to API clients."""

    kind: str = "error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(UnderkoverError):
    """A required field or parameter is missing or malformed."""

    kind = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(UnderkoverError):
    """The addressed resource does not exist (or has expired)."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class PostNotFound(NotFound):
    def __init__(self, message: str = "Post not found") -> None:
        super().__init__(message)


class CommentNotFound(NotFound):
    def __init__(self, message: str = "Comment not found") -> None:
        super().__init__(message)


class GhostCircleNotFound(NotFound):
    def __init__(self, message: str = "Ghost circle not found") -> None:
        super().__init__(message)


class NotAuthorized(UnderkoverError):
    """The acting user does not own the resource."""

    kind = "authorization_error"
    status_code = status.HTTP_403_FORBIDDEN


class ConcurrentModification(UnderkoverError):
    """A whole-document write kept losing to concurrent writers."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


_KIND_BY_STATUS = {
    status.HTTP_400_BAD_REQUEST: ValidationFailed.kind,
    status.HTTP_401_UNAUTHORIZED: "authentication_error",
    status.HTTP_403_FORBIDDEN: NotAuthorized.kind,
    status.HTTP_404_NOT_FOUND: NotFound.kind,
    status.HTTP_409_CONFLICT: ConcurrentModification.kind,
    status.HTTP_422_UNPROCESSABLE_ENTITY: ValidationFailed.kind,
}


def kind_for_status(status_code: int) -> str:
    """Return the error kind reported for a bare HTTP status."""
    return _KIND_BY_STATUS.get(status_code, UnderkoverError.kind)
