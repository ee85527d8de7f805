# donation_core/workflows/reconciliation.py
from __future__ import annotations

"""
Legacy appointment reconciliation.

The legacy document store scattered appointment documents over four
collections with inconsistent linking fields. This sweep migrates them
into the canonical Appointment table once:

- CORRECT   already migrated into an Appointment of the subject's case
- MISPLACED not (or wrongly) migrated; repaired unless dry_run
- ORPHANED  references a subject that has no DonationCase; reported only

Legacy rows are never deleted. Re-running a sweep is a no-op.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, time as dt_time, timezone as dt_timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_datetime, parse_date

from donation_core.models import (
    Appointment,
    AuditLog,
    DonationCase,
    LegacyAppointmentRecord,
)
from donation_core.workflows.registry import SubjectRole

logger = logging.getLogger(__name__)


LINK_FIELDS = ("recipientId", "donorId", "patientId", "userId")

CANONICAL_COLLECTION: Dict[str, str] = {
    SubjectRole.DONOR.value: LegacyAppointmentRecord.Collection.DONOR,
    SubjectRole.RECIPIENT.value: LegacyAppointmentRecord.Collection.RECIPIENT,
}

LEGACY_STATUS_MAP: Dict[str, str] = {
    "completed": Appointment.AppointmentStatus.COMPLETED,
    "done": Appointment.AppointmentStatus.COMPLETED,
    "cancelled": Appointment.AppointmentStatus.CANCELLED,
    "canceled": Appointment.AppointmentStatus.CANCELLED,
}


class Placement(str, Enum):
    CORRECT = "correct"
    MISPLACED = "misplaced"
    ORPHANED = "orphaned"


@dataclass
class RecordFinding:
    record_id: int
    collection: str
    document_id: str
    placement: Placement
    issues: List[str] = field(default_factory=list)
    appointment_id: Optional[int] = None
    repaired: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "collection": self.collection,
            "document_id": self.document_id,
            "placement": self.placement.value,
            "issues": list(self.issues),
            "appointment_id": self.appointment_id,
            "repaired": self.repaired,
        }


@dataclass
class ReconciliationReport:
    subject_ref: str
    case_id: Optional[int]
    dry_run: bool = False
    findings: List[RecordFinding] = field(default_factory=list)

    def _count(self, placement: Placement) -> int:
        return sum(1 for f in self.findings if f.placement is placement)

    @property
    def scanned(self) -> int:
        return len(self.findings)

    @property
    def correct(self) -> int:
        return self._count(Placement.CORRECT)

    @property
    def misplaced(self) -> int:
        return self._count(Placement.MISPLACED)

    @property
    def orphaned(self) -> int:
        return self._count(Placement.ORPHANED)

    @property
    def repaired(self) -> int:
        return sum(1 for f in self.findings if f.repaired)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "subject_ref": self.subject_ref,
            "case_id": self.case_id,
            "dry_run": self.dry_run,
            "summary": {
                "scanned": self.scanned,
                "correct": self.correct,
                "misplaced": self.misplaced,
                "orphaned": self.orphaned,
                "repaired": self.repaired,
            },
            "findings": [f.as_dict() for f in self.findings],
        }


# ------------------------------------------------------------
# Payload inspection
# ------------------------------------------------------------

def _records_for_subject(subject_ref: str):
    q = Q()
    for name in LINK_FIELDS:
        q |= Q(**{f"payload__{name}": subject_ref})
    # Copies made by earlier fix-up scripts sort after their originals
    records = list(LegacyAppointmentRecord.objects.filter(q).select_related("migrated_appointment"))
    records.sort(key=lambda r: (bool(_original_key(r)), r.collection, r.document_id))
    return records


def _original_key(record) -> Optional[Tuple[str, str]]:
    payload = record.payload or {}
    original_id = payload.get("originalAppointmentId")
    original_collection = payload.get("originalCollection")
    if original_id and original_collection:
        return str(original_collection), str(original_id)
    return None


def _source_key(record) -> Tuple[str, str]:
    return _original_key(record) or (record.collection, record.document_id)


def _placement_issues(record, case) -> List[str]:
    payload = record.payload or {}
    issues: List[str] = []

    expected = {CANONICAL_COLLECTION[case.subject_role]}
    if payload.get("doctorId"):
        expected.add(LegacyAppointmentRecord.Collection.DOCTOR_SCHEDULED)
    if record.collection not in expected:
        issues.append("wrong_collection")

    role_field = f"{case.subject_role.lower()}Id"
    missing = [
        name for name in (role_field, "patientId", "userId")
        if payload.get(name) != case.subject_ref
    ]
    if missing:
        issues.append("missing_link_ids:" + ",".join(missing))

    declared = str(payload.get("patientType") or payload.get("type") or "").strip().lower()
    if declared in {"donor", "recipient"} and declared != case.subject_role.lower():
        issues.append("wrong_subject_type")

    return issues


# "14:00", "14:00:00", "2:00 PM", "2:00PM", "2 PM"
TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p", "%I %p", "%I%p")


def _parse_time(text: str) -> Optional[dt_time]:
    text = " ".join(text.strip().upper().split())
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def _parse_when(payload: Dict[str, Any], issues: List[str]) -> Optional[datetime]:
    """
    Best-effort appointment datetime. Returns None when the date itself is
    unusable; a bad separate "time" field adds "unparseable_time" and keeps
    the day at midnight.
    """
    raw = payload.get("dateTime") or payload.get("appointmentDate") or payload.get("date")
    if raw is None:
        return None

    # Firestore Timestamp export: {"seconds": ..., "nanoseconds": ...}
    if isinstance(raw, dict):
        seconds = raw.get("seconds", raw.get("_seconds"))
        if seconds is None:
            return None
        try:
            return datetime.fromtimestamp(int(seconds), tz=dt_timezone.utc)
        except (TypeError, ValueError, OverflowError):
            return None

    if isinstance(raw, (int, float)):
        # Milliseconds since epoch (JavaScript Date)
        try:
            return datetime.fromtimestamp(raw / 1000.0, tz=dt_timezone.utc)
        except (ValueError, OverflowError):
            return None

    text = str(raw).strip()
    # Well-formed but impossible values ("2024-02-30") raise ValueError
    try:
        value = parse_datetime(text)
        day = parse_date(text) if value is None else None
    except ValueError:
        return None

    if value is None:
        if day is None:
            return None
        value = datetime.combine(day, dt_time.min)
        time_text = str(payload.get("time") or "").strip()
        if time_text:
            parsed = _parse_time(time_text)
            if parsed is None:
                issues.append("unparseable_time")
            else:
                value = datetime.combine(day, parsed)
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def _appointment_fields(record, issues: List[str]) -> Dict[str, Any]:
    payload = record.payload or {}

    when = _parse_when(payload, issues)
    if when is None:
        issues.append("unparseable_date")
        when = record.imported_at

    raw_status = str(payload.get("status") or "").strip().lower()
    notes = str(payload.get("notes") or "").strip()
    if payload.get("doctorId"):
        notes = f"{notes}\nLegacy doctor id: {payload['doctorId']}".strip()

    return {
        "when": when,
        "purpose": str(
            payload.get("purpose")
            or payload.get("reason")
            or payload.get("title")
            or "Legacy appointment"
        )[:255],
        "location": str(payload.get("location") or payload.get("hospitalName") or "")[:255],
        "notes": notes,
        "status": LEGACY_STATUS_MAP.get(raw_status, Appointment.AppointmentStatus.SCHEDULED),
    }


# ------------------------------------------------------------
# Repair
# ------------------------------------------------------------

def _repair(record, case, issues: List[str], actor, now) -> Appointment:
    collection, document_id = _source_key(record)

    with transaction.atomic():
        appointment = (
            Appointment.objects.select_for_update()
            .filter(legacy_collection=collection, legacy_document_id=document_id)
            .first()
        )
        if appointment is None:
            appointment = Appointment.objects.create(
                case=case,
                legacy_collection=collection,
                legacy_document_id=document_id,
                **_appointment_fields(record, issues),
            )
        elif appointment.case_id != case.pk:
            appointment.case = case
            appointment.save(update_fields=["case", "updated_at"])

        record.migrated_appointment = appointment
        record.repaired_at = now
        record.save(update_fields=["migrated_appointment", "repaired_at"])

        AuditLog.objects.create(
            user=actor,
            action=f"RECONCILE {record.collection}/{record.document_id}",
            details={
                "case_id": case.pk,
                "subject_ref": case.subject_ref,
                "appointment_id": appointment.pk,
                "issues": issues,
            },
        )

    return appointment


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------

def sweep(subject_ref: str, *, actor=None, dry_run: bool = False, now=None) -> ReconciliationReport:
    """
    Classify and repair every legacy appointment document referencing
    `subject_ref`. Orphaned documents are only reported.
    """
    now = now or timezone.now()
    subject_ref = str(subject_ref or "").strip()
    case = DonationCase.objects.filter(subject_ref=subject_ref).first()

    report = ReconciliationReport(
        subject_ref=subject_ref,
        case_id=case.pk if case else None,
        dry_run=dry_run,
    )
    if not subject_ref:
        return report

    for record in _records_for_subject(subject_ref):
        finding = RecordFinding(
            record_id=record.pk,
            collection=record.collection,
            document_id=record.document_id,
            placement=Placement.ORPHANED,
        )
        report.findings.append(finding)

        if case is None:
            finding.issues.append("no_case_for_subject")
            logger.warning(
                "Orphaned legacy appointment %s/%s (subject %s)",
                record.collection,
                record.document_id,
                subject_ref,
            )
            continue

        migrated = record.migrated_appointment
        if migrated is not None and migrated.case_id == case.pk:
            finding.placement = Placement.CORRECT
            finding.appointment_id = migrated.pk
            continue

        finding.placement = Placement.MISPLACED
        finding.issues.extend(_placement_issues(record, case))
        finding.issues.append("linked_to_other_case" if migrated is not None else "not_migrated")

        if dry_run:
            continue

        appointment = _repair(record, case, finding.issues, actor, now)
        finding.appointment_id = appointment.pk
        finding.repaired = True
        logger.info(
            "Repaired legacy appointment %s/%s -> appointment %s (case %s)",
            record.collection,
            record.document_id,
            appointment.pk,
            case.pk,
        )

    return report


def referenced_subjects() -> List[str]:
    refs: Set[str] = set()
    for payload in LegacyAppointmentRecord.objects.values_list("payload", flat=True).iterator():
        for name in LINK_FIELDS:
            value = (payload or {}).get(name)
            if isinstance(value, str) and value.strip():
                refs.add(value.strip())
    return sorted(refs)


def sweep_all(*, actor=None, dry_run: bool = False) -> List[ReconciliationReport]:
    reports = [sweep(ref, actor=actor, dry_run=dry_run) for ref in referenced_subjects()]
    logger.info(
        "Reconciliation sweep over %d subjects: %d repaired, %d orphaned%s",
        len(reports),
        sum(r.repaired for r in reports),
        sum(r.orphaned for r in reports),
        " (dry run)" if dry_run else "",
    )
    return reports
