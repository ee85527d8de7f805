# donation_core/views.py
from __future__ import annotations

from django.db.models import QuerySet

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .filters import AppointmentFilter, DonationCaseFilter
from .models import Appointment, AuditLog, DonationCase, Notification
from .permissions import (
    STAFF_ROLES,
    IsStaffRoleOrReadOwn,
    IsWorkflowAdmin,
    subject_ref_for,
    user_has_any_role,
)
from .serializers import (
    AppointmentNoteSerializer,
    AppointmentRescheduleSerializer,
    AppointmentSerializer,
    AuditLogSerializer,
    DonationCaseSerializer,
    NotificationSerializer,
)
from .services.appointments import (
    cancel_appointment,
    complete_appointment,
    reschedule_appointment,
    schedule_appointment,
)
from .services.decisions import open_case
from .views_workflow_api import WorkflowErrorMixin


# ===============================================================
# Utilities
# ===============================================================
def _is_staff(user) -> bool:
    return user_has_any_role(user, STAFF_ROLES)


def _scope_to_subject(qs: QuerySet, user, subject_path: str) -> QuerySet:
    """
    Staff see everything; everyone else only rows about themselves.
    """
    if not user or not user.is_authenticated:
        return qs.none()
    if _is_staff(user):
        return qs
    return qs.filter(**{subject_path: user})


# ===============================================================
# Health
# ===============================================================
class HealthCheckView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(tags=["System"])
    def get(self, request):
        return Response({"status": "ok", "service": "donation-portal"})


# ===============================================================
# Cases (status changes go through /decision/ only)
# ===============================================================
class DonationCaseViewSet(WorkflowErrorMixin, viewsets.ModelViewSet):
    serializer_class = DonationCaseSerializer
    permission_classes = [IsStaffRoleOrReadOwn]
    filterset_class = DonationCaseFilter
    http_method_names = ["get", "post", "patch", "head", "options"]

    def get_queryset(self):
        qs = DonationCase.objects.select_related("subject").all()
        return _scope_to_subject(qs, self.request.user, "subject")

    def perform_create(self, serializer):
        user = self.request.user
        data = serializer.validated_data

        subject = data.get("subject")
        subject_ref = data.get("subject_ref")
        if not _is_staff(user):
            # Applicants can only open their own case, under their own id
            if subject is not None and subject != user:
                raise PermissionDenied("You can only open an application for yourself.")
            own_ref = subject_ref_for(user)
            if subject_ref and subject_ref != own_ref:
                raise PermissionDenied("You can only open an application under your own account id.")
            subject, subject_ref = user, own_ref
            if DonationCase.objects.filter(subject_ref=subject_ref).exists():
                raise ValidationError({"subject_ref": "You already have an application."})
        elif not subject_ref:
            raise ValidationError({"subject_ref": "This field is required."})

        serializer.instance = open_case(
            subject_ref=subject_ref,
            subject_role=data["subject_role"],
            subject=subject,
            details=data.get("details"),
            actor=user,
        )


# ===============================================================
# Appointments
# ===============================================================
class AppointmentViewSet(WorkflowErrorMixin, viewsets.ModelViewSet):
    serializer_class = AppointmentSerializer
    permission_classes = [IsStaffRoleOrReadOwn]
    filterset_class = AppointmentFilter
    http_method_names = ["get", "post", "head", "options"]

    def get_queryset(self):
        qs = Appointment.objects.select_related("case", "scheduled_by").all()
        return _scope_to_subject(qs, self.request.user, "case__subject")

    def perform_create(self, serializer):
        if not _is_staff(self.request.user):
            raise PermissionDenied("Only doctors and administrators can schedule appointments.")

        data = serializer.validated_data
        serializer.instance = schedule_appointment(
            data["case"],
            scheduled_by=self.request.user,
            when=data["when"],
            purpose=data["purpose"],
            location=data.get("location", ""),
            notes=data.get("notes", ""),
        )

    def _change_status(self, request, change):
        appointment = self.get_object()
        note = AppointmentNoteSerializer(data=request.data or {})
        note.is_valid(raise_exception=True)
        appointment = change(appointment, note.validated_data.get("note", ""))
        return Response(self.get_serializer(appointment).data)

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        return self._change_status(request, complete_appointment)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        return self._change_status(request, cancel_appointment)

    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):
        appointment = self.get_object()
        body = AppointmentRescheduleSerializer(data=request.data or {})
        body.is_valid(raise_exception=True)
        appointment = reschedule_appointment(
            appointment,
            when=body.validated_data["when"],
            reason=body.validated_data["reason"],
        )
        return Response(self.get_serializer(appointment).data)


# ===============================================================
# Notifications (own only; "read" is the only writable field)
# ===============================================================
class NotificationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ["get", "patch", "head", "options"]

    def get_queryset(self):
        return Notification.objects.filter(user=self.request.user).order_by("-created_at", "-id")


# ===============================================================
# Audit logs (READ-ONLY)
# ===============================================================
class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = AuditLog.objects.select_related("user").all().order_by("-created_at", "-id")
    serializer_class = AuditLogSerializer
    permission_classes = [IsWorkflowAdmin]
