"""
Common permissions for the Journal Portal.

All checks go through the role capability sets in ``apps.users.roles``.
"""
from rest_framework import permissions

from apps.users.roles import capabilities_for


class IsAuthor(permissions.BasePermission):
    """Accounts allowed to create submissions."""

    message = 'Your role cannot submit manuscripts.'

    def has_permission(self, request, view):
        return capabilities_for(request.user).can_submit


class IsReviewer(permissions.BasePermission):
    """Accounts allowed to review manuscripts."""

    message = 'Reviewer access required.'

    def has_permission(self, request, view):
        return capabilities_for(request.user).can_review


class IsEditorOrAdmin(permissions.BasePermission):
    """Editors and administrators."""

    message = 'Editor access required.'

    def has_permission(self, request, view):
        return capabilities_for(request.user).can_handle_submissions


class IsAdmin(permissions.BasePermission):
    """Administrators only."""

    message = 'Administrator access required.'

    def has_permission(self, request, view):
        return capabilities_for(request.user).can_administer


class IsOwner(permissions.BasePermission):
    """
    Object-level permission: the object's ``user`` (or ``author``) is the
    requesting user.
    """

    def has_object_permission(self, request, view, obj):
        owner = getattr(obj, 'user', None) or getattr(obj, 'author', None)
        return owner == request.user
