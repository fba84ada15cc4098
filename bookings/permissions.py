# =============================================================================
# IMPORTS
# =============================================================================
from rest_framework import permissions

from .exceptions import Forbidden, Unauthorized
from .models import Role


# =============================================================================
# ROLE & OWNERSHIP PREDICATES
# =============================================================================
# Every mutating operation asks one of these; nothing else compares roles.

TOUR_MANAGER_ROLES = (Role.ADMIN, Role.GUIDE)


def is_signed_in(user) -> bool:
    return bool(user is not None and getattr(user, 'is_authenticated', False))


def has_role(user, *roles) -> bool:
    return is_signed_in(user) and user.role in roles


def can_create_tour(user) -> bool:
    return has_role(user, *TOUR_MANAGER_ROLES)


def can_manage_tour(user, tour) -> bool:
    """Admins manage every tour; guides only the ones they created."""
    if not is_signed_in(user):
        return False
    return user.role == Role.ADMIN or user.pk == tour.created_by_id


def can_change_roles(user) -> bool:
    return has_role(user, Role.ADMIN)


def can_upload_images(user) -> bool:
    return can_create_tour(user)


# =============================================================================
# GUARDS
# =============================================================================

def ensure_signed_in(user):
    if not is_signed_in(user):
        raise Unauthorized()


def ensure_can_create_tour(user):
    ensure_signed_in(user)
    if not can_create_tour(user):
        raise Forbidden("Only guides and admins can create tours.")


def ensure_can_manage_tour(user, tour):
    ensure_signed_in(user)
    if not can_manage_tour(user, tour):
        raise Forbidden("Only the tour's creator or an admin can change this tour.")


def ensure_can_change_roles(user):
    ensure_signed_in(user)
    if not can_change_roles(user):
        raise Forbidden("Admin access required.")


def ensure_can_upload_images(user):
    ensure_signed_in(user)
    if not can_upload_images(user):
        raise Forbidden("Only guides and admins can upload tour images.")


# =============================================================================
# DRF PERMISSION CLASSES
# =============================================================================

class IsGuideOrAdmin(permissions.BasePermission):
    """Allows access only to guides and admins."""
    message = "Guide or admin access required."

    def has_permission(self, request, view):
        return can_create_tour(request.user)


class IsAdminRole(permissions.BasePermission):
    """Allows access only to users with the ADMIN role."""
    message = "Admin access required."

    def has_permission(self, request, view):
        return can_change_roles(request.user)


class IsTourManagerOrReadOnly(permissions.BasePermission):
    """
    Read access for everyone; creating needs a guide or admin, and any other
    write needs a signed-in user. Ownership of an existing tour is checked by
    TourService, which every tour write goes through.
    """

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        if view.action == 'create':
            return can_create_tour(request.user)
        return is_signed_in(request.user)
