"""
Errors raised by the booking, tour and review services.

Each error carries the HTTP status and a machine-readable code so the API
layer can render it without knowing which rule failed.
"""


class TourServiceError(Exception):
    """Base class for business-rule and validation failures."""
    status_code = 400
    default_code = "error"
    default_message = "The request could not be completed."

    def __init__(self, message=None, code=None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        super().__init__(self.message)


class NotFound(TourServiceError):
    status_code = 404
    default_code = "not_found"
    default_message = "Not found."


class Unauthorized(TourServiceError):
    status_code = 401
    default_code = "unauthorized"
    default_message = "You must be signed in."


class Forbidden(TourServiceError):
    status_code = 403
    default_code = "forbidden"
    default_message = "You do not have permission to perform this action."


class Conflict(TourServiceError):
    status_code = 409
    default_code = "conflict"


class AlreadyBooked(Conflict):
    default_code = "already_booked"
    default_message = "You have already booked this tour."


class FullyBooked(Conflict):
    default_code = "fully_booked"
    default_message = "Tour is fully booked."


class AlreadyReviewed(Conflict):
    default_code = "already_reviewed"
    default_message = "You have already submitted a review for this tour."


class TourNotYetCompleted(Conflict):
    default_code = "tour_not_yet_completed"
    default_message = "You can only review tours that have already taken place."


class InvalidInput(TourServiceError):
    status_code = 400
    default_code = "validation"
    default_message = "Invalid request data."

    def __init__(self, message=None, code=None, errors=None):
        super().__init__(message, code)
        self.errors = errors or {}


class InternalError(TourServiceError):
    status_code = 500
    default_code = "internal"
    default_message = "Something went wrong. Please try again later."
