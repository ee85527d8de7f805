from __future__ import annotations

"""
Single-case workflow services.

All status changes MUST go through submit_decision() (or, for the
low-level building blocks, attempt_transition() + commit_transition()).
Never update DonationCase.status directly in views or serializers.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from django.db import transaction

from donation_core.models import DonationCase, TransitionRecord
from donation_core.permissions import ordered_roles
from donation_core.workflows import (
    ActorRole,
    Transition,
    UnauthorizedActor,
    WorkflowError,
    attempt_transition,
    automatic_decision,
)
from donation_core.workflows.registry import resolve_subject_role
from donation_core.workflows.transition_service import commit_transition, record_submission

logger = logging.getLogger(__name__)

# Safety bound on chained automatic handoffs
MAX_AUTOMATIC_STEPS = 5


@dataclass
class DecisionResult:
    case: DonationCase
    records: List[TransitionRecord] = field(default_factory=list)

    @property
    def status(self) -> str:
        return self.case.status


# ---------------------------------------------------------------------
# Opening a case
# ---------------------------------------------------------------------

@transaction.atomic
def open_case(
    *,
    subject_ref: str,
    subject_role: str,
    subject=None,
    details: Optional[dict] = None,
    actor=None,
    comment: str = "",
) -> DonationCase:
    """
    Create a DonationCase in the initial status together with its
    submission record, so the history log replays from the empty state.
    """
    role = resolve_subject_role(subject_role)
    case = DonationCase.objects.create(
        subject_ref=str(subject_ref).strip(),
        subject_role=role.value,
        subject=subject,
        details=details or {},
    )
    record_submission(case, actor=actor or subject, comment=comment)
    logger.info("Opened %s case %s for subject %s", role.value.lower(), case.pk, case.subject_ref)
    return case


# ---------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------

def _plan(case, roles: Iterable, decision, comment: str) -> Transition:
    """
    Try each role the actor holds; the first one allowed to take the
    decision wins. Errors other than UnauthorizedActor are raised as-is.
    """
    roles = list(roles)
    if not roles:
        raise UnauthorizedActor("You have no workflow role.")

    unauthorized: Optional[UnauthorizedActor] = None
    for role in roles:
        try:
            return attempt_transition(case, role, decision, comment)
        except UnauthorizedActor as exc:
            unauthorized = unauthorized or exc
    raise unauthorized


def _run_automatic_steps(case, records: List[TransitionRecord]) -> None:
    for _ in range(MAX_AUTOMATIC_STEPS):
        auto = automatic_decision(case.subject_role, case.status)
        if auto is None:
            return
        transition = attempt_transition(case, ActorRole.SYSTEM, auto)
        records.append(commit_transition(case, transition, actor=None))


def submit_decision(
    case: DonationCase,
    *,
    actor,
    decision,
    comment: str = "",
    actor_role=None,
) -> DecisionResult:
    """
    Validate and commit one decision, then apply any automatic handoff
    the new status triggers (each as its own history record).

    actor_role:
        When given, the caller vouches for the role (internal callers,
        tests). When omitted, roles are read from UserRole for `actor`.
    """
    roles = [actor_role] if actor_role is not None else ordered_roles(actor)

    transition = _plan(case, roles, decision, comment)
    records = [commit_transition(case, transition, actor=actor)]

    try:
        _run_automatic_steps(case, records)
    except WorkflowError as exc:
        # The user's decision is committed; a failed handoff leaves the
        # case in a valid intermediate status that an admin can move on.
        logger.error("Automatic handoff failed for case %s: %s", case.pk, exc)

    return DecisionResult(case=case, records=records)
