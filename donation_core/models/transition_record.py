from django.conf import settings
from django.db import models

from donation_core.workflows.guards import AppendOnlyModelMixin


class TransitionRecord(AppendOnlyModelMixin, models.Model):
    """
    Immutable history log for case status transitions.

    Replaying a case's records in order reproduces its current status.
    (case, from_status, to_status) is the idempotency key of a commit.
    """

    case = models.ForeignKey(
        "donation_core.DonationCase",
        on_delete=models.PROTECT,
        related_name="transitions",
    )

    # Blank for the submission record that opens a case
    from_status = models.CharField(max_length=64, blank=True)
    to_status = models.CharField(max_length=64)
    decision = models.CharField(max_length=16)

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="case_transitions",
    )
    # Snapshot of the actor identity, survives user deletion
    actor_ref = models.CharField(max_length=150, blank=True)
    actor_role = models.CharField(max_length=16)

    stage = models.CharField(max_length=64, blank=True)
    override = models.BooleanField(default=False)
    comment = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["case", "from_status", "to_status"],
                name="transition_record_idempotency_key",
            ),
        ]
        indexes = [
            models.Index(fields=["case", "created_at"], name="transition_case_time_idx"),
        ]

    def __str__(self):
        origin = self.from_status or "<new>"
        return (
            f"case {self.case_id}: {origin} → {self.to_status} "
            f"by {self.actor_ref or 'system'} ({self.actor_role})"
        )
