"""
Domain exceptions.

Every error the catalog reports to a caller derives from ``CatalogError``.
Each class carries the HTTP status it maps to and a stable machine-readable
code; ``vidshelf.main`` renders them as ``{"error": {"code", "message"}}``.
"""


class CatalogError(Exception):
    """Base exception for catalog errors."""

    status_code: int = 500
    default_code: str = "catalog_error"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class ValidationError(CatalogError):
    """Missing or malformed required field. Raised before any side effect."""

    status_code = 422
    default_code = "validation_failed"


class DuplicateVideoError(ValidationError):
    """A video with this file id has already been published."""

    status_code = 409
    default_code = "video_already_published"


class NotFoundError(CatalogError):
    """Unknown video, job or uploader id."""

    status_code = 404
    default_code = "not_found"


class AuthorizationError(CatalogError):
    """Caller tried to mutate a video they do not own."""

    status_code = 403
    default_code = "forbidden"


class CollaboratorError(CatalogError):
    """An external service (video host, image host) failed or misbehaved."""

    status_code = 502
    default_code = "collaborator_unavailable"


class RemoteSubmissionError(CollaboratorError):
    """The ingestion service did not hand back a remote job id."""

    default_code = "remote_submission_failed"


class RemoteJobCancelled(CatalogError):
    """The remote ingestion job was cancelled by its owner."""

    status_code = 409
    default_code = "remote_job_cancelled"


class TransientServerError(CatalogError):
    """Unexpected internal fault. Details stay in the server logs."""

    status_code = 500
    default_code = "internal_server_error"
