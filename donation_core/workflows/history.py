# donation_core/workflows/history.py
from __future__ import annotations

from typing import Iterable, List, Optional

from donation_core.workflows.errors import WorkflowError
from donation_core.workflows.registry import CaseStatus, resolve_status


class ReplayMismatch(WorkflowError):
    code = "replay_mismatch"

    def __init__(self, message: str = "", *, position: Optional[int] = None):
        self.position = position
        super().__init__(message, position=position)


def replay_status(records: Iterable) -> Optional[CaseStatus]:
    """
    Fold an ordered transition log from the empty initial state.

    Each record needs `from_status` and `to_status`. The first record must
    start from the empty state, and every following record must start where
    the previous one ended. Returns None for an empty log.
    """
    current: Optional[CaseStatus] = None

    for position, record in enumerate(records):
        raw_from = (record.from_status or "").strip()
        from_status = resolve_status(raw_from) if raw_from else None

        if from_status != current:
            expected = current.value if current else "<empty>"
            got = from_status.value if from_status else "<empty>"
            raise ReplayMismatch(
                f"Record #{position} starts at {got}, expected {expected}.",
                position=position,
            )
        current = resolve_status(record.to_status)

    return current


def replay_matches(records: Iterable, status) -> bool:
    try:
        replayed = replay_status(records)
    except WorkflowError:
        return False
    if replayed is None:
        return False
    return replayed == resolve_status(status)


def replay_path(records: Iterable) -> List[str]:
    path: List[str] = []
    for record in records:
        if not path and record.from_status:
            path.append(resolve_status(record.from_status).value)
        path.append(resolve_status(record.to_status).value)
    return path
