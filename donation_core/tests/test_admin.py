# donation_core/tests/test_admin.py

import pytest
from django.contrib.admin.sites import AdminSite
from django.test import RequestFactory

from donation_core import admin as donation_admin
from donation_core.models import AuditLog, DonationCase, TransitionRecord


@pytest.fixture
def admin_request(make_user):
    request = RequestFactory().get("/admin/")
    request.user = make_user("site-admin", is_superuser=True)
    request.user.is_staff = True
    return request


@pytest.mark.django_db
def test_history_and_audit_admins_are_read_only(admin_request, recipient_case):
    site = AdminSite()
    record = recipient_case.transitions.get()

    for model, klass in (
        (TransitionRecord, donation_admin.TransitionRecordAdmin),
        (AuditLog, donation_admin.AuditLogAdmin),
    ):
        ma = klass(model, site)
        assert ma.has_add_permission(admin_request) is False
        assert ma.has_change_permission(admin_request, record) is False
        assert ma.has_delete_permission(admin_request, record) is False


@pytest.mark.django_db
def test_case_admin_never_edits_status(admin_request, recipient_case):
    ma = donation_admin.DonationCaseAdmin(DonationCase, AdminSite())
    readonly = ma.get_readonly_fields(admin_request, recipient_case)
    assert "status" in readonly
    assert "reviewed_by" in readonly
    assert ma.has_delete_permission(admin_request, recipient_case) is False


@pytest.mark.django_db
def test_case_admin_search_results_are_ordered(admin_request, case_factory):
    first = case_factory("DONOR", subject_ref="b-ref")
    second = case_factory("RECIPIENT", subject_ref="a-ref")

    ma = donation_admin.DonationCaseAdmin(DonationCase, AdminSite())
    qs, _use_distinct = ma.get_search_results(
        admin_request, ma.get_queryset(admin_request), search_term=""
    )

    assert qs.ordered is True
    ids = list(qs.values_list("id", flat=True))
    assert ids.index(second.pk) < ids.index(first.pk)
