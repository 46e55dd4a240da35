"""
Management command to rebuild the cached total_content of collections.

total_content is a cache over the placement table; this command finds and
fixes collections where the two disagree.
"""

from django.core.management.base import BaseCommand

from gallery.models import Collection
from gallery.tasks import recount_collection_totals, recount_totals


class Command(BaseCommand):
    help = 'Recount cached placement totals on collections'

    def add_arguments(self, parser):
        parser.add_argument(
            '--collection-id',
            type=int,
            action='append',
            dest='collection_ids',
            help='Recount only this collection (repeatable)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be corrected without saving',
        )
        parser.add_argument(
            '--async',
            action='store_true',
            dest='run_async',
            help='Queue the recount on Celery instead of running it here',
        )

    def handle(self, *args, **options):
        collection_ids = options.get('collection_ids')
        dry_run = options.get('dry_run')

        if collection_ids:
            missing = set(collection_ids) - set(
                Collection.objects.filter(pk__in=collection_ids).values_list('pk', flat=True)
            )
            if missing:
                self.stdout.write(
                    self.style.ERROR(
                        f"No collection found with ID(s): {', '.join(map(str, sorted(missing)))}"
                    )
                )
                return

        if options.get('run_async'):
            result = recount_collection_totals.delay(collection_ids)
            self.stdout.write(self.style.SUCCESS(f'Queued recount task {result.id}'))
            return

        if dry_run:
            self.stdout.write(self.style.WARNING('DRY RUN MODE: No changes will be saved\n'))

        corrections = recount_totals(collection_ids, dry_run=dry_run)

        for collection_id, (old, new) in sorted(corrections.items()):
            self.stdout.write(f'  Collection {collection_id}: {old} -> {new}')

        if dry_run:
            self.stdout.write(
                self.style.WARNING(f'\nDRY RUN COMPLETE: {len(corrections)} collection(s) would change')
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(f'\nRECOUNT COMPLETE: Corrected {len(corrections)} collection(s)')
            )
