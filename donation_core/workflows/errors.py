# donation_core/workflows/errors.py
from __future__ import annotations

"""
Workflow error taxonomy.

Every error here is recoverable by the caller: re-read the case and retry,
or show `message` to the user. None of them should crash a worker.
"""


class WorkflowError(Exception):
    code = "workflow_error"

    def __init__(self, message: str = "", **context):
        self.message = message or self.default_message()
        self.context = context
        super().__init__(self.message)

    def default_message(self) -> str:
        return "The workflow operation could not be completed."

    def as_dict(self) -> dict:
        return {"code": self.code, "detail": self.message}


class UnknownStatus(WorkflowError):
    code = "unknown_status"

    def __init__(self, raw=None, message: str = ""):
        self.raw = raw
        super().__init__(message or f"Unknown status: {raw!r}", raw=raw)


class IllegalTransition(WorkflowError):
    code = "illegal_transition"

    def default_message(self) -> str:
        return "This decision is not valid for the application's current status."


class UnauthorizedActor(WorkflowError):
    code = "unauthorized_actor"

    def default_message(self) -> str:
        return "You are not permitted to take this decision at the current stage."


class MissingJustification(WorkflowError):
    code = "missing_justification"

    def default_message(self) -> str:
        return "An override requires a written justification."


class StaleState(WorkflowError):
    code = "stale_state"

    def default_message(self) -> str:
        return (
            "The application was updated by someone else. "
            "Reload it and try again."
        )


class PersistError(WorkflowError):
    code = "persist_error"

    def default_message(self) -> str:
        return "The decision could not be saved right now. Please try again."


__all__ = [
    "WorkflowError",
    "UnknownStatus",
    "IllegalTransition",
    "UnauthorizedActor",
    "MissingJustification",
    "StaleState",
    "PersistError",
]
