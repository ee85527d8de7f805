from __future__ import annotations

from typing import Any, Dict, List

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import (
    Appointment,
    AuditLog,
    DonationCase,
    Notification,
    TransitionRecord,
)
from .workflows import UnknownStatus, allowed_decisions, allowed_next_statuses
from .workflows.eligibility import ineligibility_reason, is_eligible_for_appointment
from .workflows.registry import resolve_subject_role

User = get_user_model()


# ===============================================================
# Helpers
# ===============================================================

class ImmutableFieldsMixin:
    """
    Blocks updates to selected fields if they appear in incoming validated data.
    """
    immutable_fields: tuple[str, ...] = ()

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        if self.instance is not None and self.immutable_fields:
            for field in self.immutable_fields:
                if field in attrs:
                    raise serializers.ValidationError(
                        {field: "This field is immutable."}
                    )
        return super().validate(attrs)


class UserSlimSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ("id", "username", "email")
        read_only_fields = fields


# ===============================================================
# Donation case
# ===============================================================

class DonationCaseSerializer(ImmutableFieldsMixin, serializers.ModelSerializer):
    subject = UserSlimSerializer(read_only=True)
    subject_id = serializers.PrimaryKeyRelatedField(
        source="subject",
        queryset=User.objects.all(),
        required=False,
        allow_null=True,
        write_only=True,
    )
    # Accepts "donor" / "Recipient" etc.; normalized in validate_subject_role
    subject_role = serializers.CharField(max_length=16)
    status_label = serializers.SerializerMethodField()
    allowed_decisions = serializers.SerializerMethodField()
    allowed_next_statuses = serializers.SerializerMethodField()
    eligible_for_appointment = serializers.SerializerMethodField()
    ineligibility_reason = serializers.SerializerMethodField()
    appointment_ids = serializers.ListField(
        source="linked_appointment_ids",
        child=serializers.IntegerField(),
        read_only=True,
    )

    immutable_fields = ("subject_ref", "subject_role")

    class Meta:
        model = DonationCase
        fields = (
            "id",
            "subject_ref",
            "subject_role",
            "subject",
            "subject_id",
            "status",
            "status_label",
            "allowed_decisions",
            "allowed_next_statuses",
            "eligible_for_appointment",
            "ineligibility_reason",
            "reviewed_by",
            "comments",
            "details",
            "appointment_ids",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "status",
            "status_label",
            "allowed_decisions",
            "allowed_next_statuses",
            "eligible_for_appointment",
            "ineligibility_reason",
            "reviewed_by",
            "comments",
            "appointment_ids",
            "created_at",
            "updated_at",
        )
        # Applicants get their own account id; staff must supply one
        extra_kwargs = {"subject_ref": {"required": False}}

    def validate_subject_role(self, value: str) -> str:
        try:
            return resolve_subject_role(value).value
        except ValueError as exc:
            raise serializers.ValidationError(str(exc))

    def validate_subject_ref(self, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("This field may not be blank.")
        return value

    def get_status_label(self, obj: DonationCase) -> str:
        return obj.get_status_display()

    # An unrecognised stored status offers nothing; the case stays listable
    def get_allowed_decisions(self, obj: DonationCase) -> List[str]:
        try:
            return allowed_decisions(obj.subject_role, obj.status)
        except UnknownStatus:
            return []

    def get_allowed_next_statuses(self, obj: DonationCase) -> List[str]:
        try:
            return allowed_next_statuses(obj.subject_role, obj.status)
        except UnknownStatus:
            return []

    def get_eligible_for_appointment(self, obj: DonationCase) -> bool:
        return is_eligible_for_appointment(obj)

    def get_ineligibility_reason(self, obj: DonationCase) -> str:
        return ineligibility_reason(obj)


class DecisionSerializer(serializers.Serializer):
    decision = serializers.CharField()
    comment = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_decision(self, value: str) -> str:
        return value.strip().lower()


# ===============================================================
# History
# ===============================================================

class TransitionRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = TransitionRecord
        fields = (
            "id",
            "from_status",
            "to_status",
            "decision",
            "actor",
            "actor_ref",
            "actor_role",
            "stage",
            "override",
            "comment",
            "created_at",
        )
        read_only_fields = fields


# ===============================================================
# Appointments
# ===============================================================

class AppointmentSerializer(ImmutableFieldsMixin, serializers.ModelSerializer):
    scheduled_by = UserSlimSerializer(read_only=True)
    subject_ref = serializers.CharField(source="case.subject_ref", read_only=True)

    immutable_fields = ("case",)

    class Meta:
        model = Appointment
        fields = (
            "id",
            "case",
            "subject_ref",
            "scheduled_by",
            "when",
            "purpose",
            "location",
            "notes",
            "status",
            "legacy_collection",
            "legacy_document_id",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "subject_ref",
            "scheduled_by",
            "status",
            "legacy_collection",
            "legacy_document_id",
            "created_at",
            "updated_at",
        )


class AppointmentNoteSerializer(serializers.Serializer):
    note = serializers.CharField(required=False, allow_blank=True, default="")


class AppointmentRescheduleSerializer(serializers.Serializer):
    when = serializers.DateTimeField()
    reason = serializers.CharField(required=False, allow_blank=True, default="")


# ===============================================================
# Notifications
# ===============================================================

class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ("id", "case", "title", "message", "kind", "read", "created_at")
        read_only_fields = ("id", "case", "title", "message", "kind", "created_at")


# ===============================================================
# AuditLog (READ-ONLY)
# ===============================================================

class AuditLogSerializer(serializers.ModelSerializer):
    user_username = serializers.CharField(source="user.username", read_only=True)

    class Meta:
        model = AuditLog
        fields = (
            "id",
            "user",
            "user_username",
            "action",
            "details",
            "created_at",
        )
        read_only_fields = fields
