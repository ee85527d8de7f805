# donation_core/tests/test_eligibility.py

from types import SimpleNamespace

import pytest

from donation_core.workflows.eligibility import (
    DONOR_ELIGIBLE,
    RECIPIENT_ELIGIBLE,
    UNKNOWN_REASON,
    ineligibility_reason,
    is_eligible_for_appointment,
)
from donation_core.workflows.registry import DONOR_STATUSES, RECIPIENT_STATUSES, CaseStatus


def _case(subject_role, status):
    return SimpleNamespace(subject_role=subject_role, status=status)


@pytest.mark.parametrize("status", sorted(DONOR_STATUSES, key=lambda s: s.value))
def test_donor_eligibility_matches_reason(status):
    case = _case("DONOR", status)
    eligible = is_eligible_for_appointment(case)
    assert eligible is (status in DONOR_ELIGIBLE)
    # Eligible <=> no reason
    assert (ineligibility_reason(case) == "") is eligible


@pytest.mark.parametrize("status", sorted(RECIPIENT_STATUSES, key=lambda s: s.value))
def test_recipient_eligibility_matches_reason(status):
    case = _case("RECIPIENT", status)
    eligible = is_eligible_for_appointment(case)
    assert eligible is (status in RECIPIENT_ELIGIBLE)
    assert (ineligibility_reason(case) == "") is eligible


def test_donor_eligibility_is_monotone_along_the_approval_path():
    path = [
        CaseStatus.PENDING,
        CaseStatus.INITIAL_DOCTOR_APPROVED,
        CaseStatus.PENDING_INITIAL_ADMIN_APPROVAL,
        CaseStatus.INITIALLY_APPROVED,
        CaseStatus.MEDICAL_EVALUATION_IN_PROGRESS,
        CaseStatus.MEDICAL_EVALUATION_COMPLETED,
    ]
    seen_eligible = False
    for status in path:
        eligible = is_eligible_for_appointment(_case("DONOR", status))
        if seen_eligible:
            assert eligible, status
        seen_eligible = seen_eligible or eligible
    assert seen_eligible


def test_final_review_pauses_scheduling_and_approval_restores_it():
    assert not is_eligible_for_appointment(_case("DONOR", "PENDING_FINAL_ADMIN_REVIEW"))
    assert is_eligible_for_appointment(_case("DONOR", "Final Admin Approved"))
    assert not is_eligible_for_appointment(_case("DONOR", "final-admin-rejected"))


def test_legacy_alias_statuses_are_resolved():
    assert is_eligible_for_appointment(_case("RECIPIENT", "approved"))
    assert is_eligible_for_appointment(_case("DONOR", "initial-admin-approved"))


def test_unknown_status_is_never_eligible():
    case = _case("DONOR", "needs-info")
    assert is_eligible_for_appointment(case) is False
    assert ineligibility_reason(case) == UNKNOWN_REASON


def test_missing_case():
    assert is_eligible_for_appointment(None) is False
    assert ineligibility_reason(None) == "Application not found."


def test_donor_reason_text():
    reason = ineligibility_reason(_case("DONOR", "INITIAL_DOCTOR_APPROVED"))
    assert "initial admin approval" in reason
