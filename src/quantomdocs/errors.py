"""Error taxonomy shared by the content and search layers."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    PATH_TRAVERSAL = "path_traversal"
    RESOURCE_NOT_FOUND = "resource_not_found"
    VALIDATION = "validation"
    RENDER_FAILURE = "render_failure"
    STORAGE_FAILURE = "storage_failure"


class ContentError(Exception):
    """Base class for failures surfaced to callers of the content service.

    Every subclass pins an :class:`ErrorKind` and the HTTP-equivalent status
    the web layer answers with, so forbidden, not-found and bad-request
    outcomes never collapse into one another.
    """

    kind: ErrorKind = ErrorKind.VALIDATION
    status_code: int = 400
    default_message = "Content error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class PathTraversalError(ContentError):
    kind = ErrorKind.PATH_TRAVERSAL
    status_code = 403
    default_message = "Path traversal attempt detected"


class ResourceNotFoundError(ContentError):
    kind = ErrorKind.RESOURCE_NOT_FOUND
    status_code = 404
    default_message = "Resource not found"


class ValidationError(ContentError):
    kind = ErrorKind.VALIDATION
    status_code = 400
    default_message = "Validation failed"


class RenderFailureError(ContentError):
    kind = ErrorKind.RENDER_FAILURE
    status_code = 500
    default_message = "Rendering failed"


class StorageError(ContentError):
    """A filesystem write, move or delete failed; nothing was refreshed."""

    kind = ErrorKind.STORAGE_FAILURE
    status_code = 500
    default_message = "Storage operation failed"


class IndexBuildError(RuntimeError):
    """Raised when the set of products to index cannot be enumerated."""
