"""Access gate: who may read and who may change inventory and bookings."""
from rest_framework.permissions import BasePermission, SAFE_METHODS


def is_authenticated(user):
    return bool(user is not None and user.is_authenticated)


def is_admin(user):
    return is_authenticated(user) and bool(getattr(user, 'is_admin', False))


class IsAdmin(BasePermission):
    """Allows access only to authenticated admin users."""
    message = 'Admin access required.'

    def has_permission(self, request, view):
        return is_admin(request.user)


class IsAdminOrReadOnly(BasePermission):
    """Anyone may read; only admins may write."""
    message = 'Admin access required.'

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return is_admin(request.user)
