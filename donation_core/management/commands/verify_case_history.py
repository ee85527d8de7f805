from django.core.management.base import BaseCommand, CommandError

from donation_core.models import DonationCase
from donation_core.workflows.history import ReplayMismatch, replay_status


class Command(BaseCommand):
    help = "Check that replaying each case's transition log reproduces its status."

    def handle(self, *args, **options):
        broken = 0
        checked = 0

        for case in DonationCase.objects.prefetch_related("transitions").order_by("id").iterator(chunk_size=500):
            checked += 1
            records = sorted(case.transitions.all(), key=lambda r: (r.created_at, r.id))
            try:
                replayed = replay_status(records)
            except ReplayMismatch as exc:
                broken += 1
                self.stderr.write(f"case {case.pk} ({case.subject_ref}): {exc.message}")
                continue

            if replayed is None or replayed.value != case.status:
                broken += 1
                got = replayed.value if replayed else "<empty log>"
                self.stderr.write(
                    f"case {case.pk} ({case.subject_ref}): stored {case.status}, replayed {got}"
                )

        if broken:
            raise CommandError(f"{broken} of {checked} cases do not replay to their status")

        self.stdout.write(self.style.SUCCESS(f"All {checked} cases replay correctly"))
