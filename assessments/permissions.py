from rest_framework import permissions

from payments.entitlements import has_access


class IsAdminRole(permissions.BasePermission):
    """
    Allows access to users with the admin role only.
    """
    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin)


class HasExamEntitlement(permissions.BasePermission):
    """
    Object-level check on an Exam: admins always pass, everyone else needs
    a live entitlement row.
    """
    message = "You do not have access to this exam."

    def has_object_permission(self, request, view, obj):
        return has_access(request.user, obj.pk)


class IsSessionOwnerOrAdmin(permissions.BasePermission):
    """
    Object-level check on an ExamSession: only its student or an admin.
    """
    message = "You do not have access to this exam session."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        return obj.student_id == request.user.id or request.user.is_admin
