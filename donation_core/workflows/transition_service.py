# donation_core/workflows/transition_service.py
from __future__ import annotations

import logging
import time
from typing import Optional, Tuple

from django.conf import settings
from django.db import IntegrityError, InterfaceError, OperationalError, transaction
from django.dispatch import Signal
from django.utils import timezone

from donation_core.models import DonationCase, TransitionRecord
from donation_core.workflows import ActorRole, Decision, Transition
from donation_core.workflows.errors import PersistError, StaleState
from donation_core.workflows.registry import INITIAL_STATUS

logger = logging.getLogger(__name__)

# Sent after the surrounding transaction commits.
# kwargs: case, record, transition (None for submissions)
case_status_changed = Signal()

TRANSIENT_ERRORS = (OperationalError, InterfaceError)


def _retry_policy() -> Tuple[int, float]:
    retries = int(getattr(settings, "DONATION_COMMIT_RETRIES", 3))
    delay = float(getattr(settings, "DONATION_COMMIT_RETRY_DELAY", 0.2))
    return max(0, retries), max(0.0, delay)


def _actor_ref(actor) -> str:
    if actor is None:
        return ""
    try:
        return actor.get_username()
    except AttributeError:
        return str(getattr(actor, "pk", actor))


def _reviewer_entry(actor, transition: Transition, now) -> dict:
    return {
        "user_id": getattr(actor, "pk", None),
        "username": _actor_ref(actor) or "system",
        "role": transition.actor_role.value,
        "at": now.isoformat(),
    }


def _append_stage(mapping, stage: str, value) -> dict:
    """
    Append-only stage map: an existing stage entry is never overwritten.
    """
    out = dict(mapping or {})
    if stage and value and stage not in out:
        out[stage] = value
    return out


def _notify_after_commit(case, record, transition) -> None:
    transaction.on_commit(
        lambda: case_status_changed.send(
            sender=DonationCase,
            case=case,
            record=record,
            transition=transition,
        )
    )


def _commit_once(case_pk, transition: Transition, actor, now) -> Tuple[TransitionRecord, bool]:
    from_value = transition.from_status.value
    to_value = transition.to_status.value

    with transaction.atomic():
        case = DonationCase.objects.select_for_update().get(pk=case_pk)
        current = (case.status or "").strip()

        existing = TransitionRecord.objects.filter(
            case_id=case.pk,
            from_status=from_value,
            to_status=to_value,
        ).first()
        if existing is not None and current == to_value:
            return existing, False

        if current != from_value:
            raise StaleState(
                f"Expected status {from_value} but the application is now {current}. "
                "Reload it and try again.",
                case_id=case.pk,
                expected=from_value,
                actual=current,
            )

        # 1) History log
        record = TransitionRecord.objects.create(
            case=case,
            from_status=from_value,
            to_status=to_value,
            decision=transition.decision.value,
            actor=actor,
            actor_ref=_actor_ref(actor),
            actor_role=transition.actor_role.value,
            stage=transition.stage,
            override=transition.override,
            comment=transition.comment,
        )

        # 2) Status + review maps (bypasses the save-level write guard)
        DonationCase.objects.filter(pk=case.pk).update(
            status=to_value,
            reviewed_by=_append_stage(
                case.reviewed_by, transition.stage, _reviewer_entry(actor, transition, now)
            ),
            comments=_append_stage(case.comments, transition.stage, transition.comment),
            updated_at=now,
        )

        return record, True


def commit_transition(case, transition: Transition, *, actor=None, now=None) -> TransitionRecord:
    """
    Atomically:
      1) Lock the case row and re-read its status
      2) Write the TransitionRecord
      3) Update case.status, reviewed_by, comments, updated_at

    Idempotent on (case, from_status, to_status): while the case still sits
    at to_status, a repeated commit returns the existing record and writes
    nothing. Once the case has moved on, the repeat is StaleState.

    Raises StaleState if the case moved away from transition.from_status,
    PersistError once transient database errors exhaust the retry budget.
    """
    now = now or timezone.now()
    retries, delay = _retry_policy()
    attempt = 0

    while True:
        attempt += 1
        try:
            record, created = _commit_once(case.pk, transition, actor, now)
            break
        except IntegrityError:
            # A concurrent writer inserted the same idempotency key first
            record = TransitionRecord.objects.filter(
                case_id=case.pk,
                from_status=transition.from_status.value,
                to_status=transition.to_status.value,
            ).first()
            if record is None:
                raise PersistError(case_id=case.pk) from None
            current = DonationCase.objects.filter(pk=case.pk).values_list("status", flat=True).first()
            if current != transition.to_status.value:
                raise StaleState(
                    case_id=case.pk,
                    expected=transition.from_status.value,
                    actual=current,
                ) from None
            created = False
            break
        except TRANSIENT_ERRORS as exc:
            if attempt > retries:
                logger.error(
                    "Commit of case %s %s -> %s failed after %d attempts: %s",
                    case.pk,
                    transition.from_status.value,
                    transition.to_status.value,
                    attempt,
                    exc,
                )
                raise PersistError(case_id=case.pk) from exc
            logger.warning(
                "Transient error committing case %s (attempt %d/%d): %s",
                case.pk,
                attempt,
                retries + 1,
                exc,
            )
            time.sleep(delay * attempt)

    case.refresh_from_db(fields=["status", "reviewed_by", "comments", "updated_at"])

    if created:
        logger.info(
            "Case %s: %s -> %s by %s (%s)%s",
            case.pk,
            record.from_status,
            record.to_status,
            record.actor_ref or "system",
            record.actor_role,
            " [override]" if record.override else "",
        )
        _notify_after_commit(case, record, transition)
    else:
        logger.info(
            "Case %s: duplicate commit %s -> %s ignored",
            case.pk,
            record.from_status,
            record.to_status,
        )

    return record


def record_submission(case, *, actor=None, comment: str = "") -> TransitionRecord:
    """
    Write the opening record ("" -> PENDING) for a freshly created case.
    Must run in the same transaction that created the case.
    """
    record, created = TransitionRecord.objects.get_or_create(
        case=case,
        from_status="",
        to_status=INITIAL_STATUS.value,
        defaults={
            "decision": Decision.SUBMIT.value,
            "actor": actor,
            "actor_ref": _actor_ref(actor),
            "actor_role": case.subject_role if actor is not None else ActorRole.SYSTEM.value,
            "stage": "submission",
            "comment": comment or "",
        },
    )
    if created:
        _notify_after_commit(case, record, None)
    return record
