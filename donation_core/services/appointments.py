from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from donation_core.models import Appointment, DonationCase
from donation_core.workflows import IllegalTransition, WorkflowError
from donation_core.workflows.eligibility import (
    ineligibility_reason,
    is_eligible_for_appointment,
)

logger = logging.getLogger(__name__)


class NotEligibleForAppointment(WorkflowError):
    code = "not_eligible"

    def default_message(self) -> str:
        return "This application cannot be scheduled yet."


APPOINTMENT_TRANSITIONS = {
    Appointment.AppointmentStatus.SCHEDULED: {
        Appointment.AppointmentStatus.COMPLETED,
        Appointment.AppointmentStatus.CANCELLED,
    },
    Appointment.AppointmentStatus.COMPLETED: set(),
    Appointment.AppointmentStatus.CANCELLED: set(),
}


def schedule_appointment(
    case: DonationCase,
    *,
    scheduled_by,
    when,
    purpose: str,
    location: str = "",
    notes: str = "",
) -> Appointment:
    """
    Book an appointment for an eligible case. Never changes the case status.
    """
    if not is_eligible_for_appointment(case):
        raise NotEligibleForAppointment(ineligibility_reason(case), case_id=case.pk)

    appointment = Appointment.objects.create(
        case=case,
        scheduled_by=scheduled_by,
        when=when,
        purpose=purpose,
        location=location,
        notes=notes,
    )
    logger.info(
        "Scheduled appointment %s for case %s at %s",
        appointment.pk,
        case.pk,
        appointment.when.isoformat(),
    )
    return appointment


def _set_status(appointment: Appointment, target: str, note: str = "") -> Appointment:
    with transaction.atomic():
        locked = Appointment.objects.select_for_update().get(pk=appointment.pk)
        current = locked.status
        if target not in APPOINTMENT_TRANSITIONS.get(current, set()):
            raise IllegalTransition(
                f"Appointment is {locked.get_status_display().lower()} "
                f"and cannot be marked {target.lower()}."
            )
        locked.status = target
        if note:
            stamp = timezone.now().strftime("%Y-%m-%d %H:%M")
            locked.notes = f"{locked.notes}\n[{stamp}] {note}".strip()
        locked.save(update_fields=["status", "notes", "updated_at"])

    appointment.refresh_from_db()
    logger.info("Appointment %s: %s -> %s", appointment.pk, current, target)
    return appointment


def complete_appointment(appointment: Appointment, note: str = "") -> Appointment:
    return _set_status(appointment, Appointment.AppointmentStatus.COMPLETED, note)


def cancel_appointment(appointment: Appointment, reason: str = "") -> Appointment:
    return _set_status(appointment, Appointment.AppointmentStatus.CANCELLED, reason)


def reschedule_appointment(appointment: Appointment, *, when, reason: str = "") -> Appointment:
    """
    Move a SCHEDULED appointment to a new time. The case must still be
    eligible; a case that lost eligibility keeps its old slot.
    """
    with transaction.atomic():
        locked = (
            Appointment.objects.select_for_update()
            .select_related("case")
            .get(pk=appointment.pk)
        )
        if locked.status != Appointment.AppointmentStatus.SCHEDULED:
            raise IllegalTransition(
                f"Appointment is {locked.get_status_display().lower()} "
                "and cannot be rescheduled."
            )
        if not is_eligible_for_appointment(locked.case):
            raise NotEligibleForAppointment(
                ineligibility_reason(locked.case), case_id=locked.case_id
            )

        previous = locked.when
        locked.when = when
        stamp = timezone.now().strftime("%Y-%m-%d %H:%M")
        line = f"[{stamp}] Rescheduled from {previous:%Y-%m-%d %H:%M}"
        if reason:
            line = f"{line}: {reason}"
        locked.notes = f"{locked.notes}\n{line}".strip()
        locked.save(update_fields=["when", "notes", "updated_at"])

    appointment.refresh_from_db()
    logger.info(
        "Appointment %s rescheduled %s -> %s",
        appointment.pk,
        previous.isoformat(),
        appointment.when.isoformat(),
    )
    return appointment
