# donation_core/tests/test_signals.py

import pytest
from django.core import mail

from donation_core.models import AuditLog, Notification
from donation_core.notifications import message_for, notify_subject
from donation_core.services.decisions import open_case, submit_decision


@pytest.mark.django_db
def test_submission_is_audited_but_not_announced(user_recipient, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        case = open_case(subject_ref="rec-sig", subject_role="recipient", subject=user_recipient)

    log = AuditLog.objects.get()
    assert log.action == "WORKFLOW RECIPIENT rec-sig: - -> PENDING"
    assert log.details["decision"] == "submit"
    assert log.details["case_id"] == case.pk
    assert not Notification.objects.exists()


@pytest.mark.django_db
def test_decision_notifies_applicant(recipient_case, user_doctor, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        submit_decision(recipient_case, actor=user_doctor, decision="approve", comment="Good match")

    note = Notification.objects.get(user=recipient_case.subject)
    assert note.case == recipient_case
    assert note.kind == "approval_update"
    assert note.title == "Doctor Approval"
    assert note.message.endswith("Reviewer comment: Good match")

    log = AuditLog.objects.get(user=user_doctor)
    assert log.action == "WORKFLOW RECIPIENT recipient-uid-1: PENDING -> DOCTOR_APPROVED"


@pytest.mark.django_db
def test_automatic_handoff_produces_one_notice(donor_case, user_doctor, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        submit_decision(donor_case, actor=user_doctor, decision="approve")

    # INITIAL_DOCTOR_APPROVED is silent; the handoff status is announced
    titles = list(Notification.objects.values_list("title", flat=True))
    assert titles == ["Pending Admin Review"]
    assert AuditLog.objects.filter(action__startswith="WORKFLOW DONOR").count() == 2


@pytest.mark.django_db
def test_email_sent_only_when_enabled(recipient_case, user_doctor, settings, django_capture_on_commit_callbacks):
    settings.WORKFLOW_EMAIL_NOTIFICATIONS = False
    with django_capture_on_commit_callbacks(execute=True):
        submit_decision(recipient_case, actor=user_doctor, decision="approve")
    assert mail.outbox == []

    settings.WORKFLOW_EMAIL_NOTIFICATIONS = True
    with django_capture_on_commit_callbacks(execute=True):
        submit_decision(recipient_case, actor=None, actor_role="ADMIN", decision="approve")

    assert len(mail.outbox) == 1
    msg = mail.outbox[0]
    assert msg.subject == "[Donation Portal] Application Approved"
    assert msg.to == ["recipient@example.org"]
    assert "Status: ADMIN_APPROVED" in msg.body
    assert "By: system" in msg.body


@pytest.mark.django_db
def test_notify_subject_without_linked_user(case_factory):
    case = case_factory("RECIPIENT")
    assert notify_subject(case, "ADMIN_APPROVED") is None


def test_silent_statuses_have_no_message():
    assert message_for("PENDING") is None
    assert message_for("initial-doctor-approved") is None
    assert message_for("final-admin-approved")[0] == "Final Admin Approval"
