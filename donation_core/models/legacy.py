from django.db import models


class LegacyAppointmentRecord(models.Model):
    """
    Raw appointment document imported from the legacy document store.

    Rows are never deleted; a repaired row points at the canonical
    Appointment it was migrated into.
    """

    class Collection(models.TextChoices):
        APPOINTMENTS = "appointments", "appointments"
        RECIPIENT = "recipientAppointments", "recipientAppointments"
        DONOR = "donorAppointments", "donorAppointments"
        DOCTOR_SCHEDULED = "doctorScheduledAppointments", "doctorScheduledAppointments"

    collection = models.CharField(max_length=64, choices=Collection.choices)
    document_id = models.CharField(max_length=128)
    payload = models.JSONField(default=dict, blank=True)

    imported_at = models.DateTimeField(auto_now_add=True)

    migrated_appointment = models.ForeignKey(
        "donation_core.Appointment",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="legacy_sources",
    )
    repaired_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["collection", "document_id"]
        unique_together = ("collection", "document_id")

    def __str__(self):
        return f"{self.collection}/{self.document_id}"
