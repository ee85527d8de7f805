# donation_core/workflows/__init__.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, List, NamedTuple, Optional

from donation_core.workflows.errors import (
    IllegalTransition,
    MissingJustification,
    PersistError,
    StaleState,
    UnauthorizedActor,
    UnknownStatus,
    WorkflowError,
)
from donation_core.workflows.registry import (
    CaseStatus,
    SubjectRole,
    TERMINAL_STATUSES,
    INITIAL_STATUS,
    is_terminal,
    pipeline_statuses,
    resolve_status,
    resolve_subject_role,
)


# ===============================================================
# Decisions and actor roles
# ===============================================================

class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    OVERRIDE = "override"
    # Automatic handoff performed by the system, never offered to users
    ADVANCE = "advance"
    # Opening a case; only ever written to the history log
    SUBMIT = "submit"

    def __str__(self) -> str:
        return self.value


class ActorRole(str, Enum):
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"
    DONOR = "DONOR"
    RECIPIENT = "RECIPIENT"
    READONLY = "READONLY"

    def __str__(self) -> str:
        return self.value


ROLE_ALIASES: Dict[str, ActorRole] = {
    "DOCTOR": ActorRole.DOCTOR,
    "PHYSICIAN": ActorRole.DOCTOR,
    "MEDICAL_STAFF": ActorRole.DOCTOR,
    "STAFF": ActorRole.DOCTOR,
    "ADMIN": ActorRole.ADMIN,
    "ADMINISTRATOR": ActorRole.ADMIN,
    "SYSTEM_ADMIN": ActorRole.ADMIN,
    "SUPERUSER": ActorRole.ADMIN,
    "SYSTEM": ActorRole.SYSTEM,
    "DONOR": ActorRole.DONOR,
    "RECIPIENT": ActorRole.RECIPIENT,
    "PATIENT": ActorRole.RECIPIENT,
    "READONLY": ActorRole.READONLY,
    "VIEWER": ActorRole.READONLY,
}


def normalize_role(value) -> ActorRole:
    if isinstance(value, ActorRole):
        return value
    raw = str(value or "").strip().upper().replace("-", "_").replace(" ", "_")
    return ROLE_ALIASES.get(raw, ActorRole.READONLY)


def normalize_decision(value) -> Decision:
    if isinstance(value, Decision):
        return value
    raw = str(value or "").strip().lower()
    try:
        return Decision(raw)
    except ValueError:
        raise IllegalTransition(f"Unknown decision: {value!r}") from None


# ===============================================================
# Canonical transition graph
# ===============================================================

class Edge(NamedTuple):
    target: CaseStatus
    roles: FrozenSet[ActorRole]
    stage: str


_DOCTOR = frozenset({ActorRole.DOCTOR})
_ADMIN = frozenset({ActorRole.ADMIN})
_HANDOFF = frozenset({ActorRole.SYSTEM, ActorRole.ADMIN})

_S = CaseStatus
_D = Decision

RECIPIENT_TRANSITIONS: Dict[CaseStatus, Dict[Decision, Edge]] = {
    _S.PENDING: {
        _D.APPROVE: Edge(_S.DOCTOR_APPROVED, _DOCTOR, "doctor_review"),
        _D.REJECT: Edge(_S.REJECTED, _DOCTOR, "doctor_review"),
        _D.OVERRIDE: Edge(_S.ADMIN_APPROVED, _ADMIN, "admin_override"),
    },
    _S.DOCTOR_APPROVED: {
        _D.APPROVE: Edge(_S.ADMIN_APPROVED, _ADMIN, "admin_review"),
        _D.REJECT: Edge(_S.REJECTED, _ADMIN, "admin_review"),
    },
    _S.REJECTED: {
        _D.OVERRIDE: Edge(_S.ADMIN_APPROVED, _ADMIN, "admin_override"),
    },
    _S.ADMIN_APPROVED: {},
}

DONOR_TRANSITIONS: Dict[CaseStatus, Dict[Decision, Edge]] = {
    _S.PENDING: {
        _D.APPROVE: Edge(_S.INITIAL_DOCTOR_APPROVED, _DOCTOR, "initial_doctor_review"),
        _D.REJECT: Edge(_S.INITIAL_DOCTOR_REJECTED, _DOCTOR, "initial_doctor_review"),
        _D.OVERRIDE: Edge(_S.PENDING_INITIAL_ADMIN_APPROVAL, _ADMIN, "admin_override"),
    },
    _S.INITIAL_DOCTOR_APPROVED: {
        _D.ADVANCE: Edge(_S.PENDING_INITIAL_ADMIN_APPROVAL, _HANDOFF, "initial_handoff"),
        _D.OVERRIDE: Edge(_S.PENDING_INITIAL_ADMIN_APPROVAL, _ADMIN, "admin_override"),
    },
    _S.INITIAL_DOCTOR_REJECTED: {
        _D.OVERRIDE: Edge(_S.PENDING_INITIAL_ADMIN_APPROVAL, _ADMIN, "admin_override"),
    },
    _S.PENDING_INITIAL_ADMIN_APPROVAL: {
        _D.APPROVE: Edge(_S.INITIALLY_APPROVED, _ADMIN, "initial_admin_review"),
        _D.REJECT: Edge(_S.INITIAL_ADMIN_REJECTED, _ADMIN, "initial_admin_review"),
    },
    _S.INITIALLY_APPROVED: {
        _D.APPROVE: Edge(_S.MEDICAL_EVALUATION_IN_PROGRESS, _DOCTOR, "medical_evaluation_start"),
    },
    _S.MEDICAL_EVALUATION_IN_PROGRESS: {
        _D.APPROVE: Edge(_S.MEDICAL_EVALUATION_COMPLETED, _DOCTOR, "medical_evaluation"),
    },
    _S.MEDICAL_EVALUATION_COMPLETED: {
        _D.APPROVE: Edge(_S.PENDING_FINAL_ADMIN_REVIEW, _DOCTOR, "final_submission"),
    },
    _S.PENDING_FINAL_ADMIN_REVIEW: {
        _D.APPROVE: Edge(_S.FINAL_ADMIN_APPROVED, _ADMIN, "final_admin_review"),
        _D.REJECT: Edge(_S.FINAL_ADMIN_REJECTED, _ADMIN, "final_admin_review"),
    },
    _S.INITIAL_ADMIN_REJECTED: {},
    _S.FINAL_ADMIN_APPROVED: {},
    _S.FINAL_ADMIN_REJECTED: {},
}

# Statuses that the system moves forward on its own right after they are reached.
AUTOMATIC_DECISIONS: Dict[SubjectRole, Dict[CaseStatus, Decision]] = {
    SubjectRole.DONOR: {_S.INITIAL_DOCTOR_APPROVED: _D.ADVANCE},
    SubjectRole.RECIPIENT: {},
}


def _transitions_for(subject_role) -> Dict[CaseStatus, Dict[Decision, Edge]]:
    role = resolve_subject_role(subject_role)
    if role is SubjectRole.DONOR:
        return DONOR_TRANSITIONS
    return RECIPIENT_TRANSITIONS


# ===============================================================
# Transition engine
# ===============================================================

@dataclass(frozen=True)
class Transition:
    subject_role: SubjectRole
    from_status: CaseStatus
    to_status: CaseStatus
    decision: Decision
    actor_role: ActorRole
    stage: str
    comment: str = ""
    override: bool = False


def _current_status(case) -> CaseStatus:
    status = resolve_status(getattr(case, "status", None))
    if status not in pipeline_statuses(case.subject_role):
        raise UnknownStatus(
            status.value,
            message=(
                f"Status {status.value} does not belong to the "
                f"{resolve_subject_role(case.subject_role).value.lower()} workflow."
            ),
        )
    return status


def attempt_transition(case, actor_role, decision, comment: str = "") -> Transition:
    """
    Compute the transition a decision would cause, without touching state.

    `case` only needs `status` and `subject_role` attributes.

    Raises:
      UnknownStatus        current status cannot be resolved
      IllegalTransition    decision has no edge from the current status
      UnauthorizedActor    actor role may not take this edge
      MissingJustification override without a comment
    """
    subject_role = resolve_subject_role(case.subject_role)
    current = _current_status(case)
    decision = normalize_decision(decision)
    role = normalize_role(actor_role)
    comment = (comment or "").strip()

    edge = _transitions_for(subject_role).get(current, {}).get(decision)
    if edge is None:
        if current in TERMINAL_STATUSES:
            raise IllegalTransition(
                f"Application is in terminal status '{current.label}' "
                "and cannot be changed."
            )
        raise IllegalTransition(
            f"Decision '{decision.value}' is not valid while the application "
            f"is '{current.label}'."
        )

    if role not in edge.roles:
        raise UnauthorizedActor(
            f"Role {role.value} cannot {decision.value} an application "
            f"that is '{current.label}'."
        )

    if decision is Decision.OVERRIDE and not comment:
        raise MissingJustification()

    return Transition(
        subject_role=subject_role,
        from_status=current,
        to_status=edge.target,
        decision=decision,
        actor_role=role,
        stage=edge.stage,
        comment=comment,
        override=decision is Decision.OVERRIDE,
    )


def automatic_decision(subject_role, status) -> Optional[Decision]:
    role = resolve_subject_role(subject_role)
    return AUTOMATIC_DECISIONS.get(role, {}).get(resolve_status(status))


# ===============================================================
# Introspection
# ===============================================================

def allowed_decisions(subject_role, status, role=None) -> List[str]:
    """
    Decisions available from a status.

    Without a role: every decision with an edge, system handoffs excluded.
    With a role: only decisions that role may take.
    """
    current = resolve_status(status)
    edges = _transitions_for(subject_role).get(current, {})

    out: List[str] = []
    for decision, edge in edges.items():
        if role is None:
            if decision is Decision.ADVANCE:
                continue
            out.append(decision.value)
        elif normalize_role(role) in edge.roles:
            out.append(decision.value)
    return sorted(out)


def allowed_next_statuses(subject_role, status) -> List[str]:
    current = resolve_status(status)
    edges = _transitions_for(subject_role).get(current, {})
    return sorted({edge.target.value for edge in edges.values()})


def required_roles(subject_role, status, decision) -> List[str]:
    current = resolve_status(status)
    decision = normalize_decision(decision)
    edge = _transitions_for(subject_role).get(current, {}).get(decision)
    if edge is None:
        raise IllegalTransition(
            f"Decision '{decision.value}' is not valid from {current.value}."
        )
    return sorted(r.value for r in edge.roles)


def workflow_definition(subject_role=None) -> Dict[str, Any]:
    """
    Stable JSON-serializable definition for UI.
    """
    def _one(role) -> Dict[str, Any]:
        role = resolve_subject_role(role)
        transitions = []
        for current, edges in _transitions_for(role).items():
            for decision, edge in edges.items():
                transitions.append(
                    {
                        "from": current.value,
                        "decision": decision.value,
                        "to": edge.target.value,
                        "roles": sorted(r.value for r in edge.roles),
                        "stage": edge.stage,
                        "override": decision is Decision.OVERRIDE,
                    }
                )
        transitions.sort(key=lambda t: (t["from"], t["decision"]))
        statuses = pipeline_statuses(role)
        return {
            "subject_role": role.value.lower(),
            "initial": INITIAL_STATUS.value,
            "statuses": sorted(s.value for s in statuses),
            "terminal": sorted(s.value for s in statuses if s in TERMINAL_STATUSES),
            "overridable": sorted(
                s.value for s in statuses
                if s in TERMINAL_STATUSES and Decision.OVERRIDE in _transitions_for(role).get(s, {})
            ),
            "transitions": transitions,
        }

    if subject_role is None:
        return {
            "donor": _one(SubjectRole.DONOR),
            "recipient": _one(SubjectRole.RECIPIENT),
        }
    return _one(subject_role)


__all__ = [
    "ActorRole",
    "CaseStatus",
    "Decision",
    "Edge",
    "SubjectRole",
    "Transition",
    "RECIPIENT_TRANSITIONS",
    "DONOR_TRANSITIONS",
    "AUTOMATIC_DECISIONS",
    "WorkflowError",
    "UnknownStatus",
    "IllegalTransition",
    "UnauthorizedActor",
    "MissingJustification",
    "StaleState",
    "PersistError",
    "normalize_role",
    "normalize_decision",
    "resolve_status",
    "is_terminal",
    "attempt_transition",
    "automatic_decision",
    "allowed_decisions",
    "allowed_next_statuses",
    "required_roles",
    "workflow_definition",
]
