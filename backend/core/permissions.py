from rest_framework.permissions import BasePermission


class IsCountAdmin(BasePermission):
    """Staff, superusers and members of the Admin group"""
    message = 'Admin access required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'user_type', 'user') == 'admin')
