# donation_core/tests/test_status_registry.py

import pytest

from donation_core.workflows import UnknownStatus
from donation_core.workflows.registry import (
    DONOR_STATUSES,
    RECIPIENT_STATUSES,
    TERMINAL_STATUSES,
    CaseStatus,
    SubjectRole,
    is_terminal,
    pipeline_statuses,
    resolve_status,
    resolve_subject_role,
    status_choices,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("PENDING", CaseStatus.PENDING),
        ("pending", CaseStatus.PENDING),
        ("approved", CaseStatus.ADMIN_APPROVED),
        ("admin-approved", CaseStatus.ADMIN_APPROVED),
        ("Admin Approved", CaseStatus.ADMIN_APPROVED),
        ("doctor-approved", CaseStatus.DOCTOR_APPROVED),
        ("doctor-rejected", CaseStatus.REJECTED),
        ("initial-admin-approved", CaseStatus.INITIALLY_APPROVED),
        ("initially_approved", CaseStatus.INITIALLY_APPROVED),
        ("Final Admin Approved", CaseStatus.FINAL_ADMIN_APPROVED),
        ("final-admin-rejected", CaseStatus.FINAL_ADMIN_REJECTED),
        ("  medical evaluation in progress ", CaseStatus.MEDICAL_EVALUATION_IN_PROGRESS),
        ("PENDING_FINAL_ADMIN_REVIEW", CaseStatus.PENDING_FINAL_ADMIN_REVIEW),
        (CaseStatus.REJECTED, CaseStatus.REJECTED),
    ],
)
def test_resolve_status_aliases(raw, expected):
    assert resolve_status(raw) is expected


@pytest.mark.parametrize("raw", ["", None, "needs-info", "appeal-pending", "APPROVED_MAYBE", 42])
def test_unknown_values_raise(raw):
    with pytest.raises(UnknownStatus) as exc:
        resolve_status(raw)
    assert exc.value.code == "unknown_status"


def test_canonical_values_resolve_to_themselves():
    for status in CaseStatus:
        assert resolve_status(status.value) is status


def test_label_never_shadows_a_legacy_alias():
    # "Doctor Rejected" was stored by recipient screens and means REJECTED
    assert resolve_status("Doctor Rejected") is CaseStatus.REJECTED
    assert resolve_status("Pending Initial Admin Approval") is CaseStatus.PENDING_INITIAL_ADMIN_APPROVAL


def test_pipelines_share_only_the_initial_status():
    assert DONOR_STATUSES & RECIPIENT_STATUSES == {CaseStatus.PENDING}
    assert pipeline_statuses("donor") == DONOR_STATUSES
    assert pipeline_statuses(SubjectRole.RECIPIENT) == RECIPIENT_STATUSES


def test_terminal_statuses():
    assert is_terminal("admin-approved")
    assert is_terminal(CaseStatus.FINAL_ADMIN_REJECTED)
    assert not is_terminal("PENDING")
    assert not is_terminal(CaseStatus.PENDING_FINAL_ADMIN_REVIEW)
    assert TERMINAL_STATUSES <= (DONOR_STATUSES | RECIPIENT_STATUSES)


def test_subject_role_resolution():
    assert resolve_subject_role("donor") is SubjectRole.DONOR
    assert resolve_subject_role(" Recipient ") is SubjectRole.RECIPIENT
    with pytest.raises(ValueError):
        resolve_subject_role("nurse")


def test_status_choices_cover_all_statuses():
    values = [v for v, _ in status_choices()]
    assert values == [s.value for s in CaseStatus]
