from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


STATUS_CHOICES = [
    ("PENDING", "Pending Review"),
    ("DOCTOR_APPROVED", "Doctor Approved"),
    ("ADMIN_APPROVED", "Admin Approved"),
    ("REJECTED", "Rejected"),
    ("INITIAL_DOCTOR_APPROVED", "Doctor Initially Approved"),
    ("INITIAL_DOCTOR_REJECTED", "Doctor Rejected"),
    ("PENDING_INITIAL_ADMIN_APPROVAL", "Pending Initial Admin Approval"),
    ("INITIAL_ADMIN_REJECTED", "Initial Admin Rejected"),
    ("INITIALLY_APPROVED", "Initially Approved"),
    ("MEDICAL_EVALUATION_IN_PROGRESS", "Medical Evaluation In Progress"),
    ("MEDICAL_EVALUATION_COMPLETED", "Medical Evaluation Completed"),
    ("PENDING_FINAL_ADMIN_REVIEW", "Pending Final Admin Review"),
    ("FINAL_ADMIN_APPROVED", "Final Admin Approved"),
    ("FINAL_ADMIN_REJECTED", "Final Admin Rejected"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="DonationCase",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("subject_ref", models.CharField(help_text="External subject identifier (legacy user id).", max_length=128, unique=True)),
                ("subject_role", models.CharField(choices=[("DONOR", "Donor"), ("RECIPIENT", "Recipient")], db_index=True, max_length=16)),
                ("status", models.CharField(choices=STATUS_CHOICES, db_index=True, default="PENDING", editable=False, max_length=64)),
                ("reviewed_by", models.JSONField(blank=True, default=dict)),
                ("comments", models.JSONField(blank=True, default=dict)),
                ("details", models.JSONField(blank=True, default=dict)),
                (
                    "subject",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="donation_cases",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["subject_role", "status"], name="case_role_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="Appointment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("when", models.DateTimeField(db_index=True)),
                ("purpose", models.CharField(max_length=255)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("notes", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("SCHEDULED", "Scheduled"), ("COMPLETED", "Completed"), ("CANCELLED", "Cancelled")],
                        db_index=True,
                        default="SCHEDULED",
                        max_length=16,
                    ),
                ),
                ("legacy_collection", models.CharField(blank=True, max_length=64)),
                ("legacy_document_id", models.CharField(blank=True, max_length=128)),
                (
                    "case",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="appointments",
                        to="donation_core.donationcase",
                    ),
                ),
                (
                    "scheduled_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="scheduled_appointments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["when", "id"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("legacy_document_id", ""), _negated=True),
                        fields=("legacy_collection", "legacy_document_id"),
                        name="appointment_legacy_source_unique",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("action", models.CharField(db_index=True, max_length=255)),
                ("details", models.JSONField(blank=True, default=dict)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("message", models.TextField()),
                ("kind", models.CharField(default="status_update", max_length=32)),
                ("read", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "case",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="donation_core.donationcase",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="donation_notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="UserRole",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("role", models.CharField(help_text="e.g. Doctor, Admin", max_length=100)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="donation_roles",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["user", "role"],
                "unique_together": {("user", "role")},
            },
        ),
        migrations.CreateModel(
            name="TransitionRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("from_status", models.CharField(blank=True, max_length=64)),
                ("to_status", models.CharField(max_length=64)),
                ("decision", models.CharField(max_length=16)),
                ("actor_ref", models.CharField(blank=True, max_length=150)),
                ("actor_role", models.CharField(max_length=16)),
                ("stage", models.CharField(blank=True, max_length=64)),
                ("override", models.BooleanField(default=False)),
                ("comment", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="case_transitions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "case",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transitions",
                        to="donation_core.donationcase",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [models.Index(fields=["case", "created_at"], name="transition_case_time_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("case", "from_status", "to_status"),
                        name="transition_record_idempotency_key",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="LegacyAppointmentRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "collection",
                    models.CharField(
                        choices=[
                            ("appointments", "appointments"),
                            ("recipientAppointments", "recipientAppointments"),
                            ("donorAppointments", "donorAppointments"),
                            ("doctorScheduledAppointments", "doctorScheduledAppointments"),
                        ],
                        max_length=64,
                    ),
                ),
                ("document_id", models.CharField(max_length=128)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("imported_at", models.DateTimeField(auto_now_add=True)),
                ("repaired_at", models.DateTimeField(blank=True, null=True)),
                (
                    "migrated_appointment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="legacy_sources",
                        to="donation_core.appointment",
                    ),
                ),
            ],
            options={
                "ordering": ["collection", "document_id"],
                "unique_together": {("collection", "document_id")},
            },
        ),
    ]
