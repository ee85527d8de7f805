# donation_core/admin.py

from django.contrib import admin

from .models import (
    Appointment,
    AuditLog,
    DonationCase,
    LegacyAppointmentRecord,
    Notification,
    TransitionRecord,
    UserRole,
)


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =============================================================
# Transition history (READ-ONLY AUDIT LOG)
# =============================================================

@admin.register(TransitionRecord)
class TransitionRecordAdmin(ReadOnlyAdmin):
    list_display = (
        "case",
        "from_status",
        "to_status",
        "decision",
        "actor_ref",
        "actor_role",
        "override",
        "created_at",
    )
    list_filter = ("decision", "actor_role", "override", "to_status")
    search_fields = ("case__subject_ref", "actor_ref", "comment")
    ordering = ("-created_at", "-id")

    readonly_fields = [f.name for f in TransitionRecord._meta.fields]


class TransitionRecordInline(admin.TabularInline):
    model = TransitionRecord
    extra = 0
    can_delete = False
    ordering = ("created_at", "id")
    readonly_fields = (
        "from_status",
        "to_status",
        "decision",
        "actor_ref",
        "actor_role",
        "stage",
        "override",
        "comment",
        "created_at",
    )
    fields = readonly_fields

    def has_add_permission(self, request, obj=None):
        return False


# =============================================================
# Cases (status is changed through the workflow API only)
# =============================================================

@admin.register(DonationCase)
class DonationCaseAdmin(admin.ModelAdmin):
    list_display = ("subject_ref", "subject_role", "status", "subject", "updated_at")
    list_filter = ("subject_role", "status")
    search_fields = ("subject_ref", "subject__username", "subject__email")
    ordering = ("-created_at", "-id")
    readonly_fields = ("status", "reviewed_by", "comments", "created_at", "updated_at")
    inlines = [TransitionRecordInline]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ("case", "when", "purpose", "status", "legacy_collection", "legacy_document_id")
    list_filter = ("status", "legacy_collection")
    search_fields = ("case__subject_ref", "purpose", "legacy_document_id")
    ordering = ("when", "id")


@admin.register(LegacyAppointmentRecord)
class LegacyAppointmentRecordAdmin(ReadOnlyAdmin):
    list_display = ("collection", "document_id", "migrated_appointment", "imported_at", "repaired_at")
    list_filter = ("collection",)
    search_fields = ("document_id",)
    ordering = ("collection", "document_id")

    readonly_fields = [f.name for f in LegacyAppointmentRecord._meta.fields]


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("user", "title", "kind", "read", "created_at")
    list_filter = ("kind", "read")
    search_fields = ("user__username", "title")


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "created_at")
    search_fields = ("user__username", "role")


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = ("action", "user", "created_at")
    search_fields = ("action", "user__username")
    ordering = ("-created_at", "-id")

    readonly_fields = [f.name for f in AuditLog._meta.fields]
