# donation_core/workflows/guards.py

from django.core.exceptions import PermissionDenied
from django.db import models


class DecisionFieldsGuardMixin(models.Model):
    """
    Fields owned by the decision workflow cannot be changed with save().

    commit_transition writes them with a queryset update under a row lock,
    so any instance-level change to DECISION_FIELDS (the status and the
    per-stage review maps) is refused. Other fields save normally.
    """

    DECISION_FIELDS = ("status", "reviewed_by", "comments")

    class Meta:
        abstract = True

    def _changed_decision_fields(self, update_fields=None):
        fields = [
            f for f in self.DECISION_FIELDS
            if update_fields is None or f in update_fields
        ]
        if not fields or self._state.adding or self.pk is None:
            return []

        stored = self.__class__.objects.filter(pk=self.pk).values(*fields).first()
        if stored is None:
            return []
        return [f for f in fields if stored[f] != getattr(self, f)]

    def save(self, *args, **kwargs):
        changed = self._changed_decision_fields(kwargs.get("update_fields"))
        if changed:
            raise PermissionDenied(
                f"{', '.join(changed)} can only change through a workflow decision."
            )
        return super().save(*args, **kwargs)


class AppendOnlyModelMixin(models.Model):
    """
    Rows are written once and never updated or deleted.
    """

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise PermissionDenied(
                f"{self.__class__.__name__} rows are append-only."
            )
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionDenied(
            f"{self.__class__.__name__} rows are append-only."
        )
