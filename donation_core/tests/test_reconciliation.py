# donation_core/tests/test_reconciliation.py

import pytest
from django.utils import timezone

from donation_core.models import Appointment, AuditLog, LegacyAppointmentRecord
from donation_core.workflows.reconciliation import (
    Placement,
    referenced_subjects,
    sweep,
    sweep_all,
)


def _legacy(collection, document_id, **payload):
    return LegacyAppointmentRecord.objects.create(
        collection=collection,
        document_id=document_id,
        payload=payload,
    )


@pytest.fixture
def scattered(db, donor_case):
    """
    One donor's appointments spread over the legacy collections.
    """
    ref = donor_case.subject_ref
    return {
        "proper": _legacy(
            "donorAppointments", "a1",
            donorId=ref, patientId=ref, userId=ref,
            date="2024-03-01", time="09:30", purpose="Screening", status="completed",
        ),
        "shared": _legacy(
            "appointments", "a2",
            patientId=ref, date="2024-03-05T14:00:00Z", purpose="Bloods",
        ),
        "wrong_type": _legacy(
            "recipientAppointments", "a3",
            recipientId=ref, patientType="recipient",
            date={"seconds": 1710000000, "nanoseconds": 0},
        ),
        "doctor": _legacy(
            "doctorScheduledAppointments", "a4",
            donorId=ref, patientId=ref, userId=ref, doctorId="doc-9", date="not a date",
        ),
    }


@pytest.mark.django_db
def test_dry_run_classifies_without_writing(scattered, donor_case):
    report = sweep(donor_case.subject_ref, dry_run=True)

    assert report.case_id == donor_case.pk
    assert report.scanned == 4
    assert report.misplaced == 4
    assert report.repaired == 0
    assert not Appointment.objects.exists()

    by_doc = {f.document_id: f for f in report.findings}
    assert "wrong_collection" not in by_doc["a1"].issues
    assert "wrong_collection" in by_doc["a2"].issues
    assert "wrong_collection" in by_doc["a3"].issues
    assert "wrong_subject_type" in by_doc["a3"].issues
    # Doctor-scheduled documents with a doctorId are a proper location
    assert "wrong_collection" not in by_doc["a4"].issues
    assert any(i.startswith("missing_link_ids:") for i in by_doc["a2"].issues)


@pytest.mark.django_db
def test_sweep_migrates_into_canonical_appointments(scattered, donor_case, user_admin):
    report = sweep(donor_case.subject_ref, actor=user_admin)

    assert report.repaired == 4
    appts = Appointment.objects.filter(case=donor_case)
    assert appts.count() == 4

    screening = appts.get(legacy_document_id="a1")
    assert screening.legacy_collection == "donorAppointments"
    assert screening.status == Appointment.AppointmentStatus.COMPLETED
    assert screening.purpose == "Screening"

    doctor = appts.get(legacy_document_id="a4")
    assert "Legacy doctor id: doc-9" in doctor.notes

    for record in LegacyAppointmentRecord.objects.all():
        assert record.migrated_appointment.case_id == donor_case.pk
        assert record.repaired_at is not None

    assert AuditLog.objects.filter(action__startswith="RECONCILE", user=user_admin).count() == 4
    unparseable = next(f for f in report.findings if f.document_id == "a4")
    assert "unparseable_date" in unparseable.issues


@pytest.mark.django_db
def test_second_sweep_is_a_no_op(scattered, donor_case):
    sweep(donor_case.subject_ref)
    again = sweep(donor_case.subject_ref)

    assert again.correct == 4
    assert again.repaired == 0
    assert Appointment.objects.count() == 4
    # Legacy rows are kept
    assert LegacyAppointmentRecord.objects.count() == 4


@pytest.mark.django_db
def test_copies_collapse_onto_their_original(donor_case):
    ref = donor_case.subject_ref
    _legacy("donorAppointments", "orig", donorId=ref, patientId=ref, userId=ref, date="2024-04-01")
    _legacy(
        "appointments", "copy",
        patientId=ref, originalAppointmentId="orig", originalCollection="donorAppointments",
        date="2024-04-01",
    )

    sweep(ref)

    assert Appointment.objects.count() == 1
    appt = Appointment.objects.get()
    assert set(appt.legacy_sources.values_list("document_id", flat=True)) == {"orig", "copy"}


@pytest.mark.django_db
def test_record_linked_to_wrong_case_is_relinked(case_factory, donor_case):
    other = case_factory("RECIPIENT", subject_ref="someone-else")
    wrong = Appointment.objects.create(
        case=other,
        when="2024-05-01T10:00:00Z",
        purpose="Misfiled",
        legacy_collection="appointments",
        legacy_document_id="m1",
    )
    rec = _legacy("appointments", "m1", donorId=donor_case.subject_ref, date="2024-05-01")
    rec.migrated_appointment = wrong
    rec.save()

    report = sweep(donor_case.subject_ref)

    assert report.findings[0].placement is Placement.MISPLACED
    assert "linked_to_other_case" in report.findings[0].issues
    wrong.refresh_from_db()
    assert wrong.case_id == donor_case.pk


@pytest.mark.django_db
def test_orphans_are_reported_only(db):
    _legacy("appointments", "o1", userId="ghost", date="2024-01-01")

    report = sweep("ghost")

    assert report.case_id is None
    assert report.orphaned == 1
    assert report.findings[0].issues == ["no_case_for_subject"]
    assert not Appointment.objects.exists()
    assert LegacyAppointmentRecord.objects.get().migrated_appointment is None


@pytest.mark.django_db
def test_sweep_all_visits_every_referenced_subject(scattered, donor_case):
    _legacy("appointments", "o1", userId="ghost", date="2024-01-01")

    assert referenced_subjects() == sorted([donor_case.subject_ref, "ghost"])

    reports = sweep_all()
    by_ref = {r.subject_ref: r for r in reports}
    assert by_ref[donor_case.subject_ref].repaired == 4
    assert by_ref["ghost"].orphaned == 1


@pytest.mark.django_db
def test_blank_subject_ref_scans_nothing(scattered):
    report = sweep("  ")
    assert report.scanned == 0


@pytest.mark.django_db
def test_impossible_calendar_date_does_not_stop_the_sweep(donor_case):
    ref = donor_case.subject_ref
    _legacy("donorAppointments", "good", donorId=ref, patientId=ref, userId=ref, date="2024-02-01")
    _legacy("donorAppointments", "leap", donorId=ref, patientId=ref, userId=ref,
            date="2024-02-30", time="09:30")
    _legacy("appointments", "iso", patientId=ref, date="2023-13-01T10:00:00")

    report = sweep(ref)

    assert report.repaired == 3
    by_doc = {f.document_id: f for f in report.findings}
    assert "unparseable_date" in by_doc["leap"].issues
    assert "unparseable_date" in by_doc["iso"].issues
    assert "unparseable_date" not in by_doc["good"].issues

    leap = Appointment.objects.get(legacy_document_id="leap")
    assert leap.when == LegacyAppointmentRecord.objects.get(document_id="leap").imported_at


@pytest.mark.django_db
def test_twelve_hour_times_are_kept(donor_case):
    ref = donor_case.subject_ref
    _legacy("donorAppointments", "pm", donorId=ref, patientId=ref, userId=ref,
            date="2024-03-01", time="2:00 PM")
    _legacy("donorAppointments", "am", donorId=ref, patientId=ref, userId=ref,
            date="2024-03-02", time="9:15am")

    report = sweep(ref)

    pm = timezone.localtime(Appointment.objects.get(legacy_document_id="pm").when)
    am = timezone.localtime(Appointment.objects.get(legacy_document_id="am").when)
    assert (pm.day, pm.hour, pm.minute) == (1, 14, 0)
    assert (am.day, am.hour, am.minute) == (2, 9, 15)
    assert all("unparseable_time" not in f.issues for f in report.findings)


@pytest.mark.django_db
def test_bad_time_is_flagged_not_hidden(donor_case):
    ref = donor_case.subject_ref
    _legacy("donorAppointments", "late", donorId=ref, patientId=ref, userId=ref,
            date="2024-03-01", time="25:00")

    report = sweep(ref)

    assert "unparseable_time" in report.findings[0].issues
    assert "unparseable_date" not in report.findings[0].issues
    when = timezone.localtime(Appointment.objects.get().when)
    assert (when.day, when.hour) == (1, 0)
    assert "unparseable_time" in AuditLog.objects.get().details["issues"]
