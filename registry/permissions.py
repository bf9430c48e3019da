"""
Role and tenant based access control for the registry API.
"""
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission

ADMIN_ROLES = {"admin", "super"}

class IsAdminRole(BasePermission):
    """Allow access only to users with an administrative role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) in ADMIN_ROLES)


def tenant_for_user_or_raise(user):
    """Tenant the caller acts within; accounts without one cannot touch patients."""
    if not getattr(user, 'tenant_id', None):
        raise PermissionDenied('user is not bound to a tenant')
    return user.tenant_id
