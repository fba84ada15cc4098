# =============================================================================
# UTILS.PY
# =============================================================================

import logging
import re
import uuid
from typing import Dict

from django.http import JsonResponse

# Logger
logger = logging.getLogger(__name__)


# =============================================================================
# EMAIL UTILITIES
# =============================================================================

def mask_email(email: str) -> str:
    """
    Mask an email address for privacy.

    Args:
        email: Email address to mask

    Returns:
        Masked email address
    """
    if not email or '@' not in email:
        return email

    username, domain = email.split('@', 1)
    if len(username) <= 2:
        masked_username = username[0] + '*' * (len(username) - 1)
    else:
        masked_username = username[:2] + '*' * (len(username) - 2)

    return f"{masked_username}@{domain}"


# =============================================================================
# RESPONSE UTILITIES
# =============================================================================

def create_error_response(message: str, errors: Dict = None, status: int = 400, code: str = None):
    """
    Create a standardized error response.

    Args:
        message: Error message
        errors: Optional error details dictionary
        status: HTTP status code
        code: Optional machine-readable error code

    Returns:
        JsonResponse with error information
    """
    response_data = {
        "status": "error",
        "message": message
    }

    if code:
        response_data["code"] = code

    if errors:
        response_data["errors"] = errors

    return JsonResponse(response_data, status=status)


def create_success_response(data: Dict = None, message: str = "Success", status: int = 200):
    """
    Create a standardized success response.

    Args:
        data: Optional response data
        message: Success message
        status: HTTP status code

    Returns:
        JsonResponse with success information
    """
    response_data = {
        "status": "success",
        "message": message
    }

    if data:
        response_data.update(data)

    return JsonResponse(response_data, status=status)


# =============================================================================
# TOUR UTILITIES
# =============================================================================

def format_duration(hours: float) -> str:
    """
    Format a duration in hours for display.

    Durations under a day read as "16 hours"; longer ones as "2d 16h".
    """
    if hours is None:
        return ""

    if hours < 24:
        return f"{hours:g} hours"

    days = int(hours // 24)
    remaining_hours = hours % 24
    return f"{days}d {remaining_hours:g}h"


def build_image_public_id(filename: str) -> str:
    """
    Build a unique storage id for an uploaded image.

    Keeps only letters, digits, dots and dashes from the original name and
    drops the extension, which the storage backend adds itself.
    """
    base = (filename or "").rsplit('.', 1)[0]
    cleaned = re.sub(r'[^a-zA-Z0-9.-]', '', base)[:80]
    unique_suffix = uuid.uuid4().hex[:12]
    return f"{unique_suffix}-{cleaned}" if cleaned else unique_suffix
