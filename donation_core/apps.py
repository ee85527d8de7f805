# donation_core/apps.py

from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class DonationCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "donation_core"
    verbose_name = "Donation workflow"

    def ready(self):
        # Connects the case_status_changed receivers
        from . import signals  # noqa
