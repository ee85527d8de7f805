# donation_core/permissions.py
from __future__ import annotations

from typing import List, Set

from rest_framework.permissions import BasePermission, SAFE_METHODS

from .models import UserRole
from .workflows import ActorRole, normalize_role


# ------------------------------------------------------------------
# Role definitions
# ------------------------------------------------------------------
STAFF_ROLES = {ActorRole.DOCTOR, ActorRole.ADMIN}
ADMIN_ROLES = {ActorRole.ADMIN}

# Order in which a multi-role user's roles are tried for a decision
ROLE_PRECEDENCE = [
    ActorRole.ADMIN,
    ActorRole.DOCTOR,
    ActorRole.DONOR,
    ActorRole.RECIPIENT,
    ActorRole.READONLY,
]


# ------------------------------------------------------------------
# Utilities
# ------------------------------------------------------------------
def user_roles(user) -> Set[ActorRole]:
    """
    Effective workflow roles, always read from the database.
    Superusers are treated as ADMIN. Client-supplied roles are never trusted.
    """
    if not user or not getattr(user, "is_authenticated", False):
        return set()

    roles = {
        normalize_role(r)
        for r in UserRole.objects.filter(user=user).values_list("role", flat=True)
    }
    if getattr(user, "is_superuser", False):
        roles.add(ActorRole.ADMIN)
    return roles


def ordered_roles(user) -> List[ActorRole]:
    roles = user_roles(user)
    return [r for r in ROLE_PRECEDENCE if r in roles]


def user_has_any_role(user, allowed_roles: Set[ActorRole]) -> bool:
    return bool(user_roles(user) & set(allowed_roles))


def subject_ref_for(user) -> str:
    """
    Legacy subject id of an applicant account. Accounts migrated from the
    legacy store keep the legacy user id as their username.
    """
    return str(user.get_username()).strip()


def can_view_case(user, case) -> bool:
    if user_has_any_role(user, STAFF_ROLES):
        return True
    return case.subject_id is not None and case.subject_id == getattr(user, "pk", None)


# ------------------------------------------------------------------
# Permission classes
# ------------------------------------------------------------------
class IsStaffRoleOrReadOwn(BasePermission):
    """
    Read: staff (doctor/admin) see everything, subjects see their own cases.
    Write: staff only; workflow decisions are checked again by the engine.
    """

    message = "Only doctors and administrators can modify applications."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return True

    def has_object_permission(self, request, view, obj):
        user = request.user
        case = getattr(obj, "case", obj)

        if request.method in SAFE_METHODS:
            return can_view_case(user, case)

        return user_has_any_role(user, STAFF_ROLES)


class IsWorkflowAdmin(BasePermission):
    message = "Administrator role required."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return user_has_any_role(user, ADMIN_ROLES)
