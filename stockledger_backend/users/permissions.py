# users/permissions.py

from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import SAFE_METHODS, BasePermission

from users.models import User


def request_tenant(request):
    """
    Tenant scope for an API request.

    Every stock/receipt endpoint works inside exactly one tenant; a user that
    is not attached to a tenant cannot use them.
    """
    tenant = getattr(request.user, "tenant", None)
    if tenant is None:
        raise PermissionDenied("User is not attached to a tenant.")
    return tenant


# ---------------- TENANT SCOPE ----------------
class HasTenant(BasePermission):
    message = "User is not attached to a tenant."

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user
            and user.is_authenticated
            and getattr(user, "tenant_id", None) is not None
        )


# ---------------- BASE ROLE PERMISSION ----------------
class HasRole(BasePermission):
    """
    Base permission to check user role safely.
    """

    allowed_roles = set()

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user
            and user.is_authenticated
            and getattr(user, "role", None) in self.allowed_roles
        )


# ---------------- ROLE PERMISSIONS ----------------
class IsStockWriter(HasRole):
    """
    Writes (create/edit/post/cancel/delete receipts) need an operational role.
    Viewers are read-only.
    """

    allowed_roles = {User.ROLE_ADMIN, User.ROLE_MANAGER, User.ROLE_STOREMAN}

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return super().has_permission(request, view)
