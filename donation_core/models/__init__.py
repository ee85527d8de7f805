from .core import (
    TimeStampedModel,
    DonationCase,
    Appointment,
    Notification,
    UserRole,
    AuditLog,
)
from .transition_record import TransitionRecord
from .legacy import LegacyAppointmentRecord

__all__ = [
    "TimeStampedModel",
    "DonationCase",
    "Appointment",
    "Notification",
    "UserRole",
    "AuditLog",
    "TransitionRecord",
    "LegacyAppointmentRecord",
]
