"""Custom DRF permissions for the sales pipeline API."""
from django.db.models import Q
from rest_framework.permissions import BasePermission


def is_admin_user(user) -> bool:
    return bool(getattr(user, "is_superuser", False) or getattr(user, "role", None) == "ADMIN")


def is_manager_or_admin(user) -> bool:
    return is_admin_user(user) or getattr(user, "role", None) == "MANAGER"


def visible_team_ids(user) -> set:
    """Teams whose pipeline a manager can see: their own and the ones they lead."""
    team_ids = set(user.managed_teams.values_list("id", flat=True))
    if user.team_id:
        team_ids.add(user.team_id)
    return team_ids


def opportunity_scope_q(user) -> Q:
    """Filter limiting opportunities to what ``user`` may see.

    Sellers see the deals they own, managers the deals of their teams (and
    their own), admins everything.
    """
    if is_admin_user(user):
        return Q()
    if getattr(user, "role", None) == "MANAGER":
        return Q(team_id__in=visible_team_ids(user)) | Q(owner_id=user.id)
    return Q(owner_id=user.id)


class IsAdmin(BasePermission):
    """Allow access to pipeline administrators only."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and is_admin_user(request.user)


class IsManagerOrAdmin(BasePermission):
    """Allow access to users with the ADMIN or MANAGER role."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and is_manager_or_admin(request.user)


class CanAccessOpportunity(BasePermission):
    """Object-level check mirroring ``opportunity_scope_q``."""

    def has_object_permission(self, request, view, obj):
        user = request.user
        if not user.is_authenticated:
            return False
        if is_admin_user(user):
            return True
        if obj.owner_id == user.id:
            return True
        if getattr(user, "role", None) == "MANAGER":
            return obj.team_id is not None and obj.team_id in visible_team_ids(user)
        return False
