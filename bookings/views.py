# =============================================================================
# IMPORTS
# =============================================================================

# Standard library
import logging

# Django core
from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST

# Local apps
from .decorators import role_required
from .exceptions import InvalidInput, TourServiceError
from .models import Role
from .services import TourImageService
from .utils import create_error_response, create_success_response

# Logger
logger = logging.getLogger(__name__)


# =============================================================================
# TOUR IMAGE UPLOAD
# =============================================================================

@require_POST
@role_required(Role.ADMIN, Role.GUIDE)
def upload_tour_image(request):
    """Store an uploaded tour image and return its public URL."""
    try:
        url = TourImageService.upload(request.FILES.get('file'), request.user)
    except InvalidInput as e:
        return create_error_response(e.message, errors=e.errors, status=e.status_code, code=e.code)
    except TourServiceError as e:
        return create_error_response(e.message, status=e.status_code, code=e.code)

    return create_success_response({"url": url}, message="Image uploaded", status=201)


# =============================================================================
# HEALTH CHECK VIEW
# =============================================================================

@require_GET
def health_check(request):
    """Health check endpoint for monitoring."""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except DatabaseError as e:
        logger.exception("Health check failed")
        return JsonResponse({
            'status': 'unhealthy',
            'error': str(e),
            'timestamp': timezone.now().isoformat()
        }, status=503)

    return JsonResponse({
        'status': 'healthy',
        'timestamp': timezone.now().isoformat(),
    })
