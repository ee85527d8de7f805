# donation_core/notifications.py
from __future__ import annotations

from typing import Dict, Optional, Tuple

from .models import Notification
from .workflows.registry import CaseStatus, resolve_status

NOTIFICATION_KIND = "approval_update"

# status -> (title, message) shown to the applicant
STATUS_MESSAGES: Dict[CaseStatus, Tuple[str, str]] = {
    CaseStatus.DOCTOR_APPROVED: (
        "Doctor Approval",
        "Your application has been approved by a doctor and is awaiting administration review.",
    ),
    CaseStatus.ADMIN_APPROVED: (
        "Application Approved",
        "Your application has been approved by administration. You can now book appointments.",
    ),
    CaseStatus.REJECTED: (
        "Application Rejected",
        "Your application has been rejected.",
    ),
    CaseStatus.INITIAL_DOCTOR_REJECTED: (
        "Application Rejected",
        "You are not eligible for donation - the reviewing doctor rejected your application.",
    ),
    CaseStatus.PENDING_INITIAL_ADMIN_APPROVAL: (
        "Pending Admin Review",
        "Your application is now pending initial administration approval.",
    ),
    CaseStatus.INITIALLY_APPROVED: (
        "Initial Admin Approval",
        "You are initially approved by administration. "
        "Appointment scheduled by hospital soon stay tuned.",
    ),
    CaseStatus.INITIAL_ADMIN_REJECTED: (
        "Application Rejected",
        "You are not eligible for donation initially - administration reject you.",
    ),
    CaseStatus.FINAL_ADMIN_APPROVED: (
        "Final Admin Approval",
        "Congratulations! You have been finally approved by the administration "
        "after medical evaluation.",
    ),
    CaseStatus.FINAL_ADMIN_REJECTED: (
        "Final Admin Rejection",
        "Your application has been finally rejected by the administration "
        "after medical evaluation.",
    ),
}


def message_for(status) -> Optional[Tuple[str, str]]:
    """(title, message) for a status, or None when no notice is sent."""
    return STATUS_MESSAGES.get(resolve_status(status))


def notify_subject(case, status, comment: str = "") -> Optional[Notification]:
    """
    Create an in-app notification for the case's subject user.
    Returns None when the case has no linked user or the status is silent.
    """
    if case.subject_id is None:
        return None

    found = message_for(status)
    if found is None:
        return None

    title, message = found
    if comment:
        message = f"{message}\n\nReviewer comment: {comment}"

    return Notification.objects.create(
        user_id=case.subject_id,
        case=case,
        title=title,
        message=message,
        kind=NOTIFICATION_KIND,
    )
