"""
Domain errors raised by the service layer

The API layer turns every CourseHubError into a JSON body of the form
``{"message": ...}`` carrying the error's status code.
"""
from fastapi import status


class CourseHubError(Exception):
    """Base class for errors a caller can act on."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailedError(CourseHubError):
    """Raised when input is malformed or missing."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class ConflictError(CourseHubError):
    """Raised when a transition is not allowed from the record's current state."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request conflicts with the current state"


class ForbiddenError(CourseHubError):
    """Raised when the actor has the wrong role or does not own the record."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFoundError(CourseHubError):
    """Raised when an enrollment, course, teacher or student cannot be found."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"
