# donation_core/models/core.py

from django.conf import settings
from django.db import models
from django.db.models import Q

from donation_core.workflows.guards import DecisionFieldsGuardMixin
from donation_core.workflows.registry import (
    INITIAL_STATUS,
    SubjectRole,
    resolve_status,
    status_choices,
    subject_role_choices,
)


# ============================================================
# Base
# ============================================================
class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# ============================================================
# Donation case
# ============================================================
class DonationCase(DecisionFieldsGuardMixin, TimeStampedModel):
    """One donor or recipient application."""

    subject_ref = models.CharField(
        max_length=128,
        unique=True,
        help_text="External subject identifier (legacy user id).",
    )
    subject = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="donation_cases",
    )
    subject_role = models.CharField(
        max_length=16,
        choices=subject_role_choices(),
        db_index=True,
    )
    status = models.CharField(
        max_length=64,
        choices=status_choices(),
        default=INITIAL_STATUS.value,
        editable=False,
        db_index=True,
    )

    # stage name -> reviewer / comment, append-only
    reviewed_by = models.JSONField(default=dict, blank=True)
    comments = models.JSONField(default=dict, blank=True)

    details = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["subject_role", "status"], name="case_role_status_idx"),
        ]

    def __str__(self):
        return f"{self.subject_role}:{self.subject_ref} ({self.status})"

    @property
    def status_enum(self):
        return resolve_status(self.status)

    @property
    def is_donor(self) -> bool:
        return self.subject_role == SubjectRole.DONOR.value

    @property
    def linked_appointment_ids(self) -> list:
        return list(
            self.appointments.order_by("created_at", "id").values_list("id", flat=True)
        )


# ============================================================
# Appointment
# ============================================================
class Appointment(TimeStampedModel):
    class AppointmentStatus(models.TextChoices):
        SCHEDULED = "SCHEDULED", "Scheduled"
        COMPLETED = "COMPLETED", "Completed"
        CANCELLED = "CANCELLED", "Cancelled"

    case = models.ForeignKey(
        DonationCase,
        on_delete=models.PROTECT,
        related_name="appointments",
    )
    scheduled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="scheduled_appointments",
    )
    when = models.DateTimeField(db_index=True)
    purpose = models.CharField(max_length=255)
    location = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(
        max_length=16,
        choices=AppointmentStatus.choices,
        default=AppointmentStatus.SCHEDULED,
        db_index=True,
    )

    # Provenance when migrated out of legacy storage
    legacy_collection = models.CharField(max_length=64, blank=True)
    legacy_document_id = models.CharField(max_length=128, blank=True)

    class Meta:
        ordering = ["when", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["legacy_collection", "legacy_document_id"],
                condition=~Q(legacy_document_id=""),
                name="appointment_legacy_source_unique",
            ),
        ]

    def __str__(self):
        return f"{self.purpose} @ {self.when:%Y-%m-%d %H:%M} ({self.status})"


# ============================================================
# Notifications
# ============================================================
class Notification(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="donation_notifications",
    )
    case = models.ForeignKey(
        DonationCase,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications",
    )
    title = models.CharField(max_length=255)
    message = models.TextField()
    kind = models.CharField(max_length=32, default="status_update")
    read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.user} - {self.title}"


# ============================================================
# User Roles
# ============================================================
class UserRole(TimeStampedModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="donation_roles",
    )
    role = models.CharField(max_length=100, help_text="e.g. Doctor, Admin")

    class Meta:
        unique_together = ("user", "role")
        ordering = ["user", "role"]

    def __str__(self):
        return f"{self.user} - {self.role}"


# ============================================================
# Audit Log
# ============================================================
class AuditLog(TimeStampedModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    action = models.CharField(max_length=255, db_index=True)
    details = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.action
