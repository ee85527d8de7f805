# donation_core/tasks.py
from __future__ import annotations

from celery import shared_task
from django.contrib.auth import get_user_model

from donation_core.workflows.reconciliation import sweep, sweep_all


def _user(user_id: int | None):
    if not user_id:
        return None
    User = get_user_model()
    return User.objects.filter(id=user_id).first()


@shared_task
def sweep_subject_appointments(subject_ref: str, user_id: int | None = None, dry_run: bool = False) -> dict:
    return sweep(subject_ref, actor=_user(user_id), dry_run=dry_run).as_dict()["summary"]


@shared_task
def sweep_legacy_appointments(user_id: int | None = None, dry_run: bool = False) -> int:
    reports = sweep_all(actor=_user(user_id), dry_run=dry_run)
    return sum(r.repaired for r in reports)
