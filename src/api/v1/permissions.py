"""Custom DRF permissions for the commission tracker."""
from rest_framework.permissions import SAFE_METHODS, BasePermission


def can_manage_commissions(user) -> bool:
    return bool(
        user
        and user.is_authenticated
        and getattr(user, "can_manage_commissions", False)
    )


class IsCommissionAdmin(BasePermission):
    """Allow access to ADMIN/SUPERADMIN roles and Django superusers."""

    message = "Action reservee aux administrateurs."

    def has_permission(self, request, view):
        return can_manage_commissions(request.user)


class IsCommissionAdminOrReadOnly(BasePermission):
    """Any authenticated user may read; only administrators may write."""

    message = "Action reservee aux administrateurs."

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        if request.method in SAFE_METHODS:
            return True
        return can_manage_commissions(request.user)


class IsFinancialAuditor(BasePermission):
    """Auditors and administrators read and write; only administrators delete."""

    message = "Action reservee aux auditeurs financiers."

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated and getattr(user, "can_audit_finances", False)):
            return False
        if request.method == "DELETE":
            return can_manage_commissions(user)
        return True
