import json

from django.core.management.base import BaseCommand

from donation_core.workflows.reconciliation import sweep, sweep_all


class Command(BaseCommand):
    help = "Migrate misplaced legacy appointments into canonical appointments."

    def add_arguments(self, parser):
        parser.add_argument(
            "subject_refs",
            nargs="*",
            help="Subjects to sweep (default: every subject referenced by legacy data)",
        )
        parser.add_argument("--dry-run", action="store_true")
        parser.add_argument("--json", action="store_true", help="Print full reports as JSON")

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        refs = options["subject_refs"]

        if refs:
            reports = [sweep(ref, dry_run=dry_run) for ref in refs]
        else:
            reports = sweep_all(dry_run=dry_run)

        if options["json"]:
            self.stdout.write(json.dumps([r.as_dict() for r in reports], indent=2))
            return

        for r in reports:
            line = (
                f"{r.subject_ref}: {r.scanned} scanned, {r.correct} correct, "
                f"{r.misplaced} misplaced, {r.orphaned} orphaned, {r.repaired} repaired"
            )
            self.stdout.write(self.style.WARNING(line) if r.orphaned else line)

        verb = "Would repair" if dry_run else "Repaired"
        self.stdout.write(
            self.style.SUCCESS(
                f"{verb} {sum(r.misplaced if dry_run else r.repaired for r in reports)} "
                f"documents across {len(reports)} subjects"
            )
        )
