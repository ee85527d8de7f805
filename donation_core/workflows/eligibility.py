# donation_core/workflows/eligibility.py
from __future__ import annotations

from typing import Dict, FrozenSet

from donation_core.workflows.errors import UnknownStatus
from donation_core.workflows.registry import (
    CaseStatus,
    SubjectRole,
    resolve_status,
    resolve_subject_role,
)

"""
Appointment eligibility.

Pure functions of (subject_role, status). No database access, no side effects.
"""

DONOR_ELIGIBLE: FrozenSet[CaseStatus] = frozenset({
    CaseStatus.INITIALLY_APPROVED,
    CaseStatus.MEDICAL_EVALUATION_IN_PROGRESS,
    CaseStatus.MEDICAL_EVALUATION_COMPLETED,
    CaseStatus.FINAL_ADMIN_APPROVED,
})

RECIPIENT_ELIGIBLE: FrozenSet[CaseStatus] = frozenset({
    CaseStatus.ADMIN_APPROVED,
})

DONOR_REASONS: Dict[CaseStatus, str] = {
    CaseStatus.PENDING: "Donor application is still under initial review.",
    CaseStatus.INITIAL_DOCTOR_APPROVED: (
        "Donor needs initial admin approval before appointments can be scheduled."
    ),
    CaseStatus.PENDING_INITIAL_ADMIN_APPROVAL: "Donor is waiting for initial admin approval.",
    CaseStatus.INITIAL_DOCTOR_REJECTED: "Donor was rejected during initial medical review.",
    CaseStatus.INITIAL_ADMIN_REJECTED: "Donor was rejected by admin during initial review.",
    CaseStatus.PENDING_FINAL_ADMIN_REVIEW: (
        "Medical evaluation is with the administration for final review."
    ),
    CaseStatus.FINAL_ADMIN_REJECTED: "Donor application was finally rejected.",
}

RECIPIENT_REASONS: Dict[CaseStatus, str] = {
    CaseStatus.PENDING: "Recipient request is still waiting for doctor review.",
    CaseStatus.DOCTOR_APPROVED: "Recipient request is waiting for admin approval.",
    CaseStatus.REJECTED: "Recipient request was rejected.",
}

DEFAULT_REASON = "Not eligible for appointment scheduling at this time."
UNKNOWN_REASON = "Application status is not recognised; contact an administrator."


def _eligible_set(subject_role) -> FrozenSet[CaseStatus]:
    if resolve_subject_role(subject_role) is SubjectRole.DONOR:
        return DONOR_ELIGIBLE
    return RECIPIENT_ELIGIBLE


def is_eligible_for_appointment(case) -> bool:
    """
    Donor: eligible once past the initial admin gate (and not finally rejected).
    Recipient: eligible only when admin approved.

    An unresolvable status is never eligible.
    """
    if case is None:
        return False
    try:
        status = resolve_status(case.status)
    except UnknownStatus:
        return False
    return status in _eligible_set(case.subject_role)


def ineligibility_reason(case) -> str:
    """
    User-facing explanation for why `case` cannot be scheduled.
    Empty string when the case is eligible.
    """
    if case is None:
        return "Application not found."
    try:
        status = resolve_status(case.status)
    except UnknownStatus:
        return UNKNOWN_REASON

    if status in _eligible_set(case.subject_role):
        return ""

    if resolve_subject_role(case.subject_role) is SubjectRole.DONOR:
        return DONOR_REASONS.get(status, DEFAULT_REASON)
    return RECIPIENT_REASONS.get(status, DEFAULT_REASON)


__all__ = [
    "DONOR_ELIGIBLE",
    "RECIPIENT_ELIGIBLE",
    "is_eligible_for_appointment",
    "ineligibility_reason",
]
