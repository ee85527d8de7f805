# donation_core/views_identity.py
from __future__ import annotations

from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import UserRole
from .permissions import ordered_roles


class WhoAmIView(APIView):
    """
    Returns the currently authenticated user and their workflow roles.

    `roles` are the raw UserRole rows; `effective_roles` is what the
    decision endpoints will actually try, in order.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user

        roles = list(
            UserRole.objects.filter(user=user).order_by("role").values_list("role", flat=True)
        )

        return Response(
            {
                "id": user.id,
                "username": user.username,
                "is_superuser": bool(getattr(user, "is_superuser", False)),
                "roles": roles,
                "effective_roles": [r.value for r in ordered_roles(user)],
                "cases": list(user.donation_cases.values_list("id", flat=True)),
            }
        )
