"""
Application error taxonomy.

Services raise these; a single handler in app.main renders them as
{"success": false, "error": message} with the status of the error kind.
"""
from fastapi import status


class AppError(Exception):
    """Base class for errors reported to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong. Try again."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(AppError):
    """A required field is missing or a value is not acceptable."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Unauthorized(AppError):
    """Caller is not signed in, or does not own the resource."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class UpstreamFailure(AppError):
    """Geocoder, object storage or email provider call failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Something went wrong. Please try again."


# ── Collaborator errors (converted to UpstreamFailure by the caller) ───────────

class GeocodingError(Exception):
    pass


class ImageStorageError(Exception):
    pass


class NotificationError(Exception):
    pass
