import json

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from donation_core.models import LegacyAppointmentRecord


def _documents(raw):
    """
    Yield (document_id, payload) from either export shape:
      [{"id": "...", ...}, ...]   or   {"<id>": {...}, ...}
    """
    if isinstance(raw, dict):
        for doc_id, payload in raw.items():
            yield str(doc_id), dict(payload or {})
        return

    for item in raw or []:
        item = dict(item or {})
        doc_id = item.pop("id", None) or item.pop("_id", None)
        if not doc_id:
            raise CommandError(f"Document without id: {item!r}")
        yield str(doc_id), item


class Command(BaseCommand):
    help = (
        "Import a legacy appointment export "
        '({"<collection>": [documents]}) into LegacyAppointmentRecord.'
    )

    def add_arguments(self, parser):
        parser.add_argument("path", type=str)

    def handle(self, *args, **options):
        path = options["path"]

        try:
            with open(path, encoding="utf-8") as f:
                export = json.load(f)
        except (OSError, ValueError) as exc:
            raise CommandError(f"Cannot read export {path}: {exc}") from exc

        if not isinstance(export, dict):
            raise CommandError("Export must be an object keyed by collection name.")

        known = set(LegacyAppointmentRecord.Collection.values)
        unknown = sorted(set(export) - known)
        if unknown:
            raise CommandError(f"Unknown collections: {', '.join(unknown)}")

        created = skipped = 0
        with transaction.atomic():
            for collection, docs in export.items():
                for doc_id, payload in _documents(docs):
                    _, was_created = LegacyAppointmentRecord.objects.get_or_create(
                        collection=collection,
                        document_id=doc_id,
                        defaults={"payload": payload},
                    )
                    if was_created:
                        created += 1
                    else:
                        skipped += 1

        self.stdout.write(
            self.style.SUCCESS(f"Imported {created} legacy documents ({skipped} already present)")
        )
