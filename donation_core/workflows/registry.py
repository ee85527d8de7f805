# donation_core/workflows/registry.py
from __future__ import annotations

import re
from enum import Enum
from typing import Dict, FrozenSet, List, Tuple

from donation_core.workflows.errors import UnknownStatus

"""
Status registry.

The ONLY place where raw status strings are interpreted. Everything else
in the codebase works on CaseStatus members.

This module is PURE LOGIC + DATA:
- No Django imports
- Safe to import at startup
"""


class SubjectRole(str, Enum):
    DONOR = "DONOR"
    RECIPIENT = "RECIPIENT"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class CaseStatus(str, Enum):
    PENDING = "PENDING"

    # Recipient pipeline
    DOCTOR_APPROVED = "DOCTOR_APPROVED"
    ADMIN_APPROVED = "ADMIN_APPROVED"
    REJECTED = "REJECTED"

    # Donor pipeline
    INITIAL_DOCTOR_APPROVED = "INITIAL_DOCTOR_APPROVED"
    INITIAL_DOCTOR_REJECTED = "INITIAL_DOCTOR_REJECTED"
    PENDING_INITIAL_ADMIN_APPROVAL = "PENDING_INITIAL_ADMIN_APPROVAL"
    INITIAL_ADMIN_REJECTED = "INITIAL_ADMIN_REJECTED"
    INITIALLY_APPROVED = "INITIALLY_APPROVED"
    MEDICAL_EVALUATION_IN_PROGRESS = "MEDICAL_EVALUATION_IN_PROGRESS"
    MEDICAL_EVALUATION_COMPLETED = "MEDICAL_EVALUATION_COMPLETED"
    PENDING_FINAL_ADMIN_REVIEW = "PENDING_FINAL_ADMIN_REVIEW"
    FINAL_ADMIN_APPROVED = "FINAL_ADMIN_APPROVED"
    FINAL_ADMIN_REJECTED = "FINAL_ADMIN_REJECTED"

    def __str__(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS: Dict[CaseStatus, str] = {
    CaseStatus.PENDING: "Pending Review",
    CaseStatus.DOCTOR_APPROVED: "Doctor Approved",
    CaseStatus.ADMIN_APPROVED: "Admin Approved",
    CaseStatus.REJECTED: "Rejected",
    CaseStatus.INITIAL_DOCTOR_APPROVED: "Doctor Initially Approved",
    CaseStatus.INITIAL_DOCTOR_REJECTED: "Doctor Rejected",
    CaseStatus.PENDING_INITIAL_ADMIN_APPROVAL: "Pending Initial Admin Approval",
    CaseStatus.INITIAL_ADMIN_REJECTED: "Initial Admin Rejected",
    CaseStatus.INITIALLY_APPROVED: "Initially Approved",
    CaseStatus.MEDICAL_EVALUATION_IN_PROGRESS: "Medical Evaluation In Progress",
    CaseStatus.MEDICAL_EVALUATION_COMPLETED: "Medical Evaluation Completed",
    CaseStatus.PENDING_FINAL_ADMIN_REVIEW: "Pending Final Admin Review",
    CaseStatus.FINAL_ADMIN_APPROVED: "Final Admin Approved",
    CaseStatus.FINAL_ADMIN_REJECTED: "Final Admin Rejected",
}


# ===============================================================
# Pipelines
# ===============================================================

RECIPIENT_STATUSES: FrozenSet[CaseStatus] = frozenset({
    CaseStatus.PENDING,
    CaseStatus.DOCTOR_APPROVED,
    CaseStatus.ADMIN_APPROVED,
    CaseStatus.REJECTED,
})

DONOR_STATUSES: FrozenSet[CaseStatus] = frozenset({
    CaseStatus.PENDING,
    CaseStatus.INITIAL_DOCTOR_APPROVED,
    CaseStatus.INITIAL_DOCTOR_REJECTED,
    CaseStatus.PENDING_INITIAL_ADMIN_APPROVAL,
    CaseStatus.INITIAL_ADMIN_REJECTED,
    CaseStatus.INITIALLY_APPROVED,
    CaseStatus.MEDICAL_EVALUATION_IN_PROGRESS,
    CaseStatus.MEDICAL_EVALUATION_COMPLETED,
    CaseStatus.PENDING_FINAL_ADMIN_REVIEW,
    CaseStatus.FINAL_ADMIN_APPROVED,
    CaseStatus.FINAL_ADMIN_REJECTED,
})

# Terminal for doctors and for ordinary admin decisions. REJECTED and
# INITIAL_DOCTOR_REJECTED still carry an admin override edge; see
# workflow_definition()["overridable"].
TERMINAL_STATUSES: FrozenSet[CaseStatus] = frozenset({
    CaseStatus.ADMIN_APPROVED,
    CaseStatus.REJECTED,
    CaseStatus.INITIAL_DOCTOR_REJECTED,
    CaseStatus.INITIAL_ADMIN_REJECTED,
    CaseStatus.FINAL_ADMIN_APPROVED,
    CaseStatus.FINAL_ADMIN_REJECTED,
})

INITIAL_STATUS = CaseStatus.PENDING


# ===============================================================
# Legacy aliases
# ===============================================================
# Keys are normalized with _normalize_key(): lower case, any run of
# spaces/underscores/hyphens collapsed to a single hyphen.
# Canonical values and their labels are registered automatically below.

LEGACY_ALIASES: Dict[str, CaseStatus] = {
    "pending": CaseStatus.PENDING,
    "pending-review": CaseStatus.PENDING,
    "pending-doctor-review": CaseStatus.PENDING,
    "under-doctor-review": CaseStatus.PENDING,

    "doctor-approved": CaseStatus.DOCTOR_APPROVED,

    "approved": CaseStatus.ADMIN_APPROVED,
    "admin-approved": CaseStatus.ADMIN_APPROVED,
    "admin-confirmed-approval": CaseStatus.ADMIN_APPROVED,

    "rejected": CaseStatus.REJECTED,
    "doctor-rejected": CaseStatus.REJECTED,
    "admin-rejected": CaseStatus.REJECTED,
    "admin-confirmed-rejection": CaseStatus.REJECTED,

    "initial-doctor-approved": CaseStatus.INITIAL_DOCTOR_APPROVED,
    "initial-doctor-rejected": CaseStatus.INITIAL_DOCTOR_REJECTED,
    "pending-initial-admin-approval": CaseStatus.PENDING_INITIAL_ADMIN_APPROVAL,
    "initial-admin-approved": CaseStatus.INITIALLY_APPROVED,
    "initially-approved": CaseStatus.INITIALLY_APPROVED,
    "initial-admin-rejected": CaseStatus.INITIAL_ADMIN_REJECTED,

    "medical-evaluation-in-progress": CaseStatus.MEDICAL_EVALUATION_IN_PROGRESS,
    "medical-evaluation-completed": CaseStatus.MEDICAL_EVALUATION_COMPLETED,

    "pending-final-admin-review": CaseStatus.PENDING_FINAL_ADMIN_REVIEW,
    "final-admin-approved": CaseStatus.FINAL_ADMIN_APPROVED,
    "final-approved": CaseStatus.FINAL_ADMIN_APPROVED,
    "final-admin-rejected": CaseStatus.FINAL_ADMIN_REJECTED,
    "final-rejected": CaseStatus.FINAL_ADMIN_REJECTED,
}

_SEPARATORS = re.compile(r"[\s_\-]+")


def _normalize_key(value: str) -> str:
    return _SEPARATORS.sub("-", str(value or "").strip().lower()).strip("-")


def _build_lookup() -> Dict[str, CaseStatus]:
    lookup: Dict[str, CaseStatus] = {}
    for status in CaseStatus:
        lookup[_normalize_key(status.value)] = status
    for alias, status in LEGACY_ALIASES.items():
        key = _normalize_key(alias)
        if key in lookup and lookup[key] is not status:
            raise RuntimeError(f"Conflicting status alias: {alias}")
        lookup[key] = status
    # Display labels were persisted verbatim by some legacy screens.
    # Only register labels that do not collide with an existing alias.
    for status, label in STATUS_LABELS.items():
        lookup.setdefault(_normalize_key(label), status)
    return lookup


_LOOKUP: Dict[str, CaseStatus] = _build_lookup()


# ===============================================================
# Public API
# ===============================================================

def resolve_status(raw) -> CaseStatus:
    """
    Resolve any status representation to exactly one canonical value.

    Accepts CaseStatus members, canonical values ("ADMIN_APPROVED"),
    legacy hyphenated strings ("admin-approved"), bare aliases ("approved")
    and legacy display labels ("Final Admin Approved").

    Raises UnknownStatus for anything else, including empty input.
    """
    if isinstance(raw, CaseStatus):
        return raw

    key = _normalize_key(raw) if isinstance(raw, str) else ""
    try:
        return _LOOKUP[key]
    except KeyError:
        raise UnknownStatus(raw) from None


def resolve_subject_role(raw) -> SubjectRole:
    if isinstance(raw, SubjectRole):
        return raw
    value = str(raw or "").strip().upper()
    try:
        return SubjectRole(value)
    except ValueError:
        raise ValueError(f"Unknown subject role: {raw!r}") from None


def is_terminal(status) -> bool:
    return resolve_status(status) in TERMINAL_STATUSES


def pipeline_statuses(subject_role) -> FrozenSet[CaseStatus]:
    role = resolve_subject_role(subject_role)
    if role is SubjectRole.DONOR:
        return DONOR_STATUSES
    return RECIPIENT_STATUSES


def status_label(status) -> str:
    return resolve_status(status).label


def status_choices() -> List[Tuple[str, str]]:
    return [(s.value, s.label) for s in CaseStatus]


def subject_role_choices() -> List[Tuple[str, str]]:
    return [(r.value, r.label) for r in SubjectRole]


__all__ = [
    "SubjectRole",
    "CaseStatus",
    "STATUS_LABELS",
    "RECIPIENT_STATUSES",
    "DONOR_STATUSES",
    "TERMINAL_STATUSES",
    "INITIAL_STATUS",
    "LEGACY_ALIASES",
    "resolve_status",
    "resolve_subject_role",
    "is_terminal",
    "pipeline_statuses",
    "status_label",
    "status_choices",
    "subject_role_choices",
]
