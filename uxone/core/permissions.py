from rest_framework.permissions import BasePermission

from .rbac import has_permission, is_super_admin


class RBACPermission(BasePermission):
    """Grants access when the authenticated user holds every listed permission"""
    required_permissions = ()
    message = 'Insufficient permissions'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return all(has_permission(user, perm) for perm in self.required_permissions)


def require_permission(*permissions):
    """
    Build a permission class for use with @permission_classes.

    Usage:
        @permission_classes([IsAuthenticated, require_permission(Permissions.SYSTEM_SETTINGS)])
    """
    return type(
        'RequirePermission',
        (RBACPermission,),
        {'required_permissions': tuple(permissions),
         'message': f"Missing permission: {', '.join(permissions)}"},
    )


class IsSuperAdmin(BasePermission):
    message = 'Super admin access required'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and is_super_admin(request.user))
