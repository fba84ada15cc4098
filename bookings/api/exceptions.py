import logging

from django.db import DatabaseError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from bookings.exceptions import InvalidInput, TourServiceError

logger = logging.getLogger(__name__)

STATUS_CODES = {
    400: 'validation',
    401: 'unauthorized',
    403: 'forbidden',
    404: 'not_found',
    405: 'method_not_allowed',
    409: 'conflict',
}


def _error_body(code, message, errors=None):
    data = {'status': 'error', 'code': code, 'message': message}
    if errors:
        data['errors'] = errors
    return data


def api_exception_handler(exc, context):
    """
    Render every API error in the envelope used by `create_error_response`.

    Service errors carry their own status and code. Database failures become
    a logged, generic 500. Everything else goes through DRF's handler first.
    """
    view = context.get('view')
    view_name = view.__class__.__name__ if view else 'unknown view'

    if isinstance(exc, TourServiceError):
        errors = exc.errors if isinstance(exc, InvalidInput) else None
        if exc.status_code >= 500:
            logger.error(f"{view_name}: {exc.message}")
        else:
            logger.info(f"{view_name}: {exc.code} ({exc.status_code})")
        return Response(_error_body(exc.code, exc.message, errors), status=exc.status_code)

    if isinstance(exc, DatabaseError):
        logger.exception(f"Database error in {view_name}: {exc}")
        return Response(
            _error_body('internal', "Something went wrong. Please try again later."),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    # Session auth sends no WWW-Authenticate header, so DRF reports a 403
    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        response.status_code = status.HTTP_401_UNAUTHORIZED

    code = STATUS_CODES.get(response.status_code, 'error')
    if isinstance(exc, exceptions.ValidationError):
        response.data = _error_body(code, "Validation error", response.data)
    else:
        detail = response.data.get('detail', '') if isinstance(response.data, dict) else ''
        response.data = _error_body(code, str(detail) or "Request failed")
    return response
