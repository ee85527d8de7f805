# donation_core/filters.py
import django_filters as df

from .models import Appointment, DonationCase, TransitionRecord
from .workflows import UnknownStatus
from .workflows.registry import resolve_status


class DonationCaseFilter(df.FilterSet):
    subject_ref = df.CharFilter(field_name="subject_ref", lookup_expr="icontains")
    subject_role = df.CharFilter(field_name="subject_role", lookup_expr="iexact")
    # Accepts canonical values and legacy aliases ("admin-approved")
    status = df.CharFilter(method="filter_status")
    created_at = df.DateFromToRangeFilter()

    class Meta:
        model = DonationCase
        fields = ["subject_ref", "subject_role", "status", "created_at"]

    def filter_status(self, queryset, name, value):
        try:
            return queryset.filter(status=resolve_status(value).value)
        except UnknownStatus:
            return queryset.none()


class AppointmentFilter(df.FilterSet):
    case = df.NumberFilter(field_name="case_id")
    subject_ref = df.CharFilter(field_name="case__subject_ref")
    status = df.CharFilter(field_name="status", lookup_expr="iexact")
    when = df.DateFromToRangeFilter()

    class Meta:
        model = Appointment
        fields = ["case", "subject_ref", "status", "when"]


class TransitionRecordFilter(df.FilterSet):
    decision = df.CharFilter(field_name="decision", lookup_expr="iexact")
    actor_role = df.CharFilter(field_name="actor_role", lookup_expr="iexact")
    override = df.BooleanFilter(field_name="override")

    class Meta:
        model = TransitionRecord
        fields = ["decision", "actor_role", "override"]
