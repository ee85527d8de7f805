# donation_core/tests/test_commands.py

import json
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from donation_core.models import Appointment, DonationCase, LegacyAppointmentRecord
from donation_core.tasks import sweep_legacy_appointments, sweep_subject_appointments


def _run(*args, **kwargs):
    out, err = StringIO(), StringIO()
    call_command(*args, stdout=out, stderr=err, **kwargs)
    return out.getvalue(), err.getvalue()


@pytest.fixture
def export_file(tmp_path):
    export = {
        "donorAppointments": [
            {"id": "d1", "donorId": "donor-uid-1", "date": "2024-02-01"},
        ],
        "appointments": {
            "s1": {"patientId": "donor-uid-1", "date": "2024-02-02"},
            "s2": {"userId": "nobody", "date": "2024-02-03"},
        },
    }
    path = tmp_path / "export.json"
    path.write_text(json.dumps(export), encoding="utf-8")
    return path


# ------------------------------------------------------------
# import_legacy_appointments
# ------------------------------------------------------------
@pytest.mark.django_db
def test_import_is_idempotent(export_file):
    out, _ = _run("import_legacy_appointments", str(export_file))
    assert "Imported 3 legacy documents (0 already present)" in out

    out, _ = _run("import_legacy_appointments", str(export_file))
    assert "Imported 0 legacy documents (3 already present)" in out
    assert LegacyAppointmentRecord.objects.count() == 3
    assert LegacyAppointmentRecord.objects.get(document_id="d1").payload == {
        "donorId": "donor-uid-1",
        "date": "2024-02-01",
    }


@pytest.mark.django_db
def test_import_rejects_unknown_collections(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"visits": []}), encoding="utf-8")
    with pytest.raises(CommandError, match="Unknown collections: visits"):
        _run("import_legacy_appointments", str(path))


@pytest.mark.django_db
def test_import_missing_file(tmp_path):
    with pytest.raises(CommandError):
        _run("import_legacy_appointments", str(tmp_path / "missing.json"))


# ------------------------------------------------------------
# reconcile_appointments
# ------------------------------------------------------------
@pytest.mark.django_db
def test_reconcile_dry_run_then_repair(export_file, donor_case):
    _run("import_legacy_appointments", str(export_file))

    out, _ = _run("reconcile_appointments", "--dry-run")
    assert "Would repair 2 documents across 2 subjects" in out
    assert "nobody: 1 scanned, 0 correct, 0 misplaced, 1 orphaned, 0 repaired" in out
    assert not Appointment.objects.exists()

    out, _ = _run("reconcile_appointments", "donor-uid-1")
    assert "Repaired 2 documents across 1 subjects" in out
    assert Appointment.objects.filter(case=donor_case).count() == 2


@pytest.mark.django_db
def test_reconcile_json_output(export_file, donor_case):
    _run("import_legacy_appointments", str(export_file))
    out, _ = _run("reconcile_appointments", "donor-uid-1", "--json", "--dry-run")
    reports = json.loads(out)
    assert reports[0]["subject_ref"] == "donor-uid-1"
    assert reports[0]["dry_run"] is True
    assert reports[0]["summary"]["misplaced"] == 2


# ------------------------------------------------------------
# verify_case_history
# ------------------------------------------------------------
@pytest.mark.django_db
def test_verify_history_passes_for_workflow_cases(recipient_approved, donor_in_final_review):
    out, _ = _run("verify_case_history")
    assert "All 2 cases replay correctly" in out


@pytest.mark.django_db
def test_verify_history_flags_tampered_status(recipient_approved, donor_case):
    # Bypasses the model write guard on purpose
    DonationCase.objects.filter(pk=donor_case.pk).update(status="FINAL_ADMIN_APPROVED")

    with pytest.raises(CommandError, match="1 of 2 cases do not replay to their status"):
        _run("verify_case_history")


# ------------------------------------------------------------
# Celery tasks (eager in tests)
# ------------------------------------------------------------
@pytest.mark.django_db
def test_sweep_tasks(export_file, donor_case, user_admin):
    _run("import_legacy_appointments", str(export_file))

    summary = sweep_subject_appointments.delay("donor-uid-1", user_admin.pk, True).get()
    assert summary == {"scanned": 2, "correct": 0, "misplaced": 2, "orphaned": 0, "repaired": 0}

    assert sweep_legacy_appointments.delay(user_admin.pk).get() == 2
    assert sweep_legacy_appointments.delay().get() == 0
