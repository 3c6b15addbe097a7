from rest_framework.permissions import BasePermission


class IsAdminRole(BasePermission):
    """Allows access to users whose role is ADMIN"""
    message = 'Admin access required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin_role)


class IsTechnicianRole(BasePermission):
    """Allows access to users whose role is TECHNICIAN"""
    message = 'Technician access required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_technician_role)
