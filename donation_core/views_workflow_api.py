# donation_core/views_workflow_api.py

from __future__ import annotations

import logging
from typing import Dict, List, Set, Type

from django.shortcuts import get_object_or_404

from rest_framework import status as http
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from donation_core.filters import TransitionRecordFilter
from donation_core.models import DonationCase
from donation_core.permissions import can_view_case, ordered_roles
from donation_core.serializers import (
    DecisionSerializer,
    DonationCaseSerializer,
    TransitionRecordSerializer,
)
from donation_core.services.appointments import NotEligibleForAppointment
from donation_core.services.decisions import submit_decision
from donation_core.workflows import (
    IllegalTransition,
    MissingJustification,
    PersistError,
    StaleState,
    UnauthorizedActor,
    UnknownStatus,
    WorkflowError,
    allowed_decisions,
)
from donation_core.workflows.eligibility import (
    ineligibility_reason,
    is_eligible_for_appointment,
)
from donation_core.workflows.history import ReplayMismatch, replay_status

logger = logging.getLogger(__name__)


# =============================================================
# Error mapping
# =============================================================

WORKFLOW_ERROR_STATUS: Dict[Type[WorkflowError], int] = {
    UnknownStatus: http.HTTP_400_BAD_REQUEST,
    IllegalTransition: http.HTTP_400_BAD_REQUEST,
    UnauthorizedActor: http.HTTP_403_FORBIDDEN,
    MissingJustification: http.HTTP_400_BAD_REQUEST,
    StaleState: http.HTTP_409_CONFLICT,
    PersistError: http.HTTP_503_SERVICE_UNAVAILABLE,
    NotEligibleForAppointment: http.HTTP_400_BAD_REQUEST,
}


def workflow_error_status(exc: WorkflowError) -> int:
    for klass in type(exc).__mro__:
        if klass in WORKFLOW_ERROR_STATUS:
            return WORKFLOW_ERROR_STATUS[klass]
    return http.HTTP_400_BAD_REQUEST


class WorkflowErrorMixin:
    """
    Renders WorkflowError as {"code": ..., "detail": ...} with a mapped status.
    """

    def handle_exception(self, exc):
        if isinstance(exc, WorkflowError):
            code = workflow_error_status(exc)
            if code >= 409:
                logger.warning("%s %s -> %s: %s", self.request.method, self.request.path, code, exc)
            return Response(exc.as_dict(), status=code)
        return super().handle_exception(exc)


# =============================================================
# Helpers
# =============================================================

def _get_visible_case(request, pk: int) -> DonationCase:
    case = get_object_or_404(DonationCase, pk=pk)
    if not can_view_case(request.user, case):
        raise PermissionDenied("You cannot view this application.")
    return case


def _allowed_for_roles(case: DonationCase, roles) -> List[str]:
    """
    Union allowed decisions across all roles the user holds.
    """
    out: Set[str] = set()
    for role in roles:
        out |= set(allowed_decisions(case.subject_role, case.status, role))
    return sorted(out)


# =============================================================
# API: Allowed decisions
# =============================================================

class CaseAllowedView(WorkflowErrorMixin, APIView):
    """
    GET /donations/cases/<pk>/allowed/

    Returns:
    - current status
    - decisions the caller may take (role-aware)
    - roles considered (from the server, never the client)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk: int):
        case = _get_visible_case(request, pk)
        roles = ordered_roles(request.user)

        return Response(
            {
                "case_id": case.pk,
                "subject_role": case.subject_role,
                "current": case.status,
                "allowed": _allowed_for_roles(case, roles),
                "roles": [r.value for r in roles],
            }
        )


# =============================================================
# API: Submit a decision (AUTHORITATIVE)
# =============================================================

class CaseDecisionView(WorkflowErrorMixin, APIView):
    """
    POST /donations/cases/<pk>/decision/

    Body:
        { "decision": "approve" | "reject" | "override", "comment": "..." }

    This endpoint is the ONLY API-level entry point
    that mutates case status.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, pk: int):
        case = get_object_or_404(DonationCase, pk=pk)

        serializer = DecisionSerializer(data=request.data or {})
        serializer.is_valid(raise_exception=True)

        result = submit_decision(
            case,
            actor=request.user,
            decision=serializer.validated_data["decision"],
            comment=serializer.validated_data.get("comment", ""),
        )

        return Response(
            {
                "case": DonationCaseSerializer(result.case, context={"request": request}).data,
                "records": TransitionRecordSerializer(result.records, many=True).data,
                "current": result.status,
            }
        )


# =============================================================
# API: History
# =============================================================

class CaseHistoryView(WorkflowErrorMixin, APIView):
    """
    GET /donations/cases/<pk>/history/

    Ordered transition log plus a replay check against the stored status.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk: int):
        case = _get_visible_case(request, pk)
        records = list(case.transitions.order_by("created_at", "id"))

        try:
            replayed = replay_status(records)
            replay_error = ""
        except ReplayMismatch as exc:
            replayed = None
            replay_error = exc.message

        shown = TransitionRecordFilter(
            request.query_params,
            queryset=case.transitions.order_by("created_at", "id"),
        ).qs

        return Response(
            {
                "case_id": case.pk,
                "current": case.status,
                "replayed": replayed.value if replayed else None,
                "consistent": replayed is not None and replayed.value == case.status,
                "replay_error": replay_error,
                "records": TransitionRecordSerializer(shown, many=True).data,
            }
        )


# =============================================================
# API: Eligibility
# =============================================================

class CaseEligibilityView(WorkflowErrorMixin, APIView):
    """
    GET /donations/cases/<pk>/eligibility/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk: int):
        case = _get_visible_case(request, pk)
        return Response(
            {
                "case_id": case.pk,
                "status": case.status,
                "eligible": is_eligible_for_appointment(case),
                "reason": ineligibility_reason(case),
            }
        )
