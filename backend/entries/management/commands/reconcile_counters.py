from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.db.models import Count, Q

from entries.counters import recount
from entries.models import Action, Entry


class Command(BaseCommand):
    help = 'Compare entry like/dislike counters against the reaction ledger'

    def add_arguments(self, parser):
        parser.add_argument('--fix', action='store_true', help='Rewrite drifted counters from the ledger')

    def handle(self, *args, **options):
        entries = Entry.objects.annotate(
            ledger_likes=Count('interactions', filter=Q(interactions__action=Action.LIKE)),
            ledger_dislikes=Count('interactions', filter=Q(interactions__action=Action.DISLIKE)),
        ).order_by('id')

        drifted = [
            e for e in entries
            if e.likes != e.ledger_likes or e.dislikes != e.ledger_dislikes
        ]
        for entry in drifted:
            self.stderr.write(
                f"Entry {entry.pk} '{entry.title}': counters {entry.likes}/{entry.dislikes}, "
                f"ledger {entry.ledger_likes}/{entry.ledger_dislikes}"
            )

        if not drifted:
            self.stdout.write(self.style.SUCCESS(f"All {entries.count()} entries consistent."))
            return

        if not options['fix']:
            raise CommandError(f"{len(drifted)} entries out of sync with the ledger (rerun with --fix).")

        with transaction.atomic():
            for entry in drifted:
                locked = Entry.objects.select_for_update().get(pk=entry.pk)
                locked.likes, locked.dislikes = recount(locked)
                locked.save(update_fields=['likes', 'dislikes'])
        self.stdout.write(self.style.SUCCESS(f"Repaired {len(drifted)} entries."))
