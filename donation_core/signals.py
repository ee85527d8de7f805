# donation_core/signals.py
from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import send_mail
from django.dispatch import receiver

from donation_core.models import AuditLog
from donation_core.notifications import message_for, notify_subject
from donation_core.workflows.transition_service import case_status_changed

logger = logging.getLogger(__name__)


def _safe_username(user) -> str:
    if not user:
        return "system"
    try:
        return user.get_username()
    except AttributeError:
        return getattr(user, "username", "user")


# ===============================================================
# STATUS CHANGES (sent after the commit transaction)
# ===============================================================
@receiver(case_status_changed)
def on_case_status_changed(sender, case, record, transition=None, **kwargs):
    """
    Side effects of a committed status change:
    - audit log entry
    - in-app notification for the applicant
    - optional email notification
    """
    # -----------------------------------------------------------
    # 1. Audit log entry
    # -----------------------------------------------------------
    AuditLog.objects.create(
        user=record.actor,
        action=(
            f"WORKFLOW {case.subject_role} {case.subject_ref}: "
            f"{record.from_status or '-'} -> {record.to_status}"
        ),
        details={
            "case_id": case.pk,
            "record_id": record.pk,
            "decision": record.decision,
            "role": record.actor_role,
            "stage": record.stage,
            "override": record.override,
            "from": record.from_status,
            "to": record.to_status,
        },
    )

    # Submissions are not announced to the applicant
    if transition is None:
        return

    # -----------------------------------------------------------
    # 2. In-app notification
    # -----------------------------------------------------------
    notify_subject(case, record.to_status, record.comment)

    # -----------------------------------------------------------
    # 3. Optional email notification (feature-flagged)
    # -----------------------------------------------------------
    if not getattr(settings, "WORKFLOW_EMAIL_NOTIFICATIONS", False):
        return

    found = message_for(record.to_status)
    email = getattr(case.subject, "email", "") if case.subject_id else ""
    if found is None or not email:
        return

    title, message = found
    body = "\n".join(
        [
            message,
            "",
            f"Application: {case.subject_ref}",
            f"Status: {record.to_status}",
            f"By: {_safe_username(record.actor)}",
            f"At: {record.created_at}",
        ]
    )

    sent = send_mail(
        subject=f"[Donation Portal] {title}",
        message=body,
        from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
        recipient_list=[email],
        fail_silently=True,
    )
    if not sent:
        logger.warning("Status email for case %s was not delivered", case.pk)
