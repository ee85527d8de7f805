# donation_core/urls.py

from django.urls import path, include
from rest_framework.routers import DefaultRouter

# -------------------------------------------------
# Core API ViewSets
# -------------------------------------------------
from .views import (
    HealthCheckView,
    DonationCaseViewSet,
    AppointmentViewSet,
    NotificationViewSet,
    AuditLogViewSet,
)

# -------------------------------------------------
# Role-aware workflow APIs (per case)
# -------------------------------------------------
from .views_workflow_api import (
    CaseAllowedView,
    CaseDecisionView,
    CaseHistoryView,
    CaseEligibilityView,
)

# -------------------------------------------------
# Workflow definitions (static metadata)
# -------------------------------------------------
from .views_workflows import (
    WorkflowDefinitionView,
    StatusResolveView,
)

# -------------------------------------------------
# Legacy reconciliation
# -------------------------------------------------
from .views_reconciliation import ReconciliationSweepView

# -------------------------------------------------
# Identity
# -------------------------------------------------
from .views_identity import WhoAmIView


app_name = "donation_core"

# -------------------------------------------------
# Router (CRUD APIs)
# -------------------------------------------------
router = DefaultRouter()
router.register(r"cases", DonationCaseViewSet, basename="case")
router.register(r"appointments", AppointmentViewSet, basename="appointment")
router.register(r"notifications", NotificationViewSet, basename="notification")
router.register(r"audit-logs", AuditLogViewSet, basename="auditlog")


urlpatterns = [
    # ============================================================
    # System
    # ============================================================
    path("health/", HealthCheckView.as_view(), name="health_check"),

    # ============================================================
    # Identity
    # ============================================================
    path("whoami/", WhoAmIView.as_view(), name="whoami"),

    # ============================================================
    # Per-case workflow
    # ============================================================
    path("cases/<int:pk>/allowed/", CaseAllowedView.as_view(), name="case-allowed"),
    path("cases/<int:pk>/decision/", CaseDecisionView.as_view(), name="case-decision"),
    path("cases/<int:pk>/history/", CaseHistoryView.as_view(), name="case-history"),
    path("cases/<int:pk>/eligibility/", CaseEligibilityView.as_view(), name="case-eligibility"),

    # ============================================================
    # Workflow definitions
    # ============================================================
    path("statuses/resolve/", StatusResolveView.as_view(), name="status-resolve"),
    path("workflows/<str:subject_role>/", WorkflowDefinitionView.as_view(), name="workflow-definition"),

    # ============================================================
    # Legacy reconciliation (admin)
    # ============================================================
    path(
        "reconciliation/<str:subject_ref>/sweep/",
        ReconciliationSweepView.as_view(),
        name="reconciliation-sweep",
    ),

    # ============================================================
    # Core CRUD API
    # ============================================================
    path("", include(router.urls)),
]
