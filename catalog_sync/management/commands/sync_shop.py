from django.core.management.base import BaseCommand, CommandError

from catalog_sync.store import resolve_credential
from catalog_sync.tasks import build_syncer


class Command(BaseCommand):
    help = "Run a full product sync for a shop, starting from the first page."

    def add_arguments(self, parser):
        parser.add_argument('shop', help="Shop domain, e.g. demo.myshopify.com")
        parser.add_argument('--page-size', type=int, default=None)

    def handle(self, *args, **options):
        shop = options['shop']
        syncer = build_syncer(page_size=options['page_size'])

        credential = resolve_credential(shop, using=syncer.store.using)
        if credential is None:
            raise CommandError(f"No stored session for {shop}")

        result = syncer.sync_shop(shop, credential)
        status = syncer.tracker.get(result.sync_id) if result.sync_id else None
        if status is not None:
            self.stdout.write(f"Sync {status.sync_id} {status.status}: {status.message}")

        if not result.success:
            raise CommandError(f"Sync failed for {shop}: {result.error}")

        self.stdout.write(self.style.SUCCESS(
            f"Synced {shop}: {result.total_processed} processed, {result.inserted} inserted, "
            f"{result.updated} updated, {result.deleted} deleted in {result.duration}s"
        ))
