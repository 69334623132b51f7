import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from django.db import DatabaseError, connections

from .exceptions import StorageError
from .models import ProductDocument, ShopSession, SyncStatus

logger = logging.getLogger(__name__)

DOCUMENT_FIELDS = ('title', 'handle', 'featured_image', 'images', 'variants')


@dataclass
class UpsertCounts:
    inserted: int = 0
    updated: int = 0


class ProductStore:
    """
    Writes product documents to the database alias it was built with.

    The alias' connection is Django's long-lived per-process connection;
    `close()` is the shutdown hook.
    """

    def __init__(self, using: str = 'default'):
        self.using = using

    @property
    def _documents(self):
        return ProductDocument.objects.using(self.using)

    def upsert_page(self, shop_name: str, documents) -> UpsertCounts:
        counts = UpsertCounts()
        try:
            for document in documents:
                _, created = self._documents.update_or_create(
                    shop_name=shop_name,
                    product_id=document['product_id'],
                    defaults={name: document.get(name) for name in DOCUMENT_FIELDS},
                )
                if created:
                    counts.inserted += 1
                else:
                    counts.updated += 1
        except DatabaseError as exc:
            raise StorageError(f"Failed to upsert products for {shop_name}: {exc}") from exc

        logger.debug(
            "Upserted page for %s: inserted=%d, updated=%d.",
            shop_name, counts.inserted, counts.updated,
        )
        return counts

    def prune_missing(self, shop_name: str, seen_product_ids) -> int:
        """Delete every stored product of the shop that is not in `seen_product_ids`."""
        try:
            deleted, _ = (
                self._documents
                .filter(shop_name=shop_name)
                .exclude(product_id__in=list(seen_product_ids))
                .delete()
            )
        except DatabaseError as exc:
            raise StorageError(f"Failed to prune products for {shop_name}: {exc}") from exc

        if deleted:
            logger.info("Pruned %d product(s) no longer in %s.", deleted, shop_name)
        return deleted

    def close(self):
        connections[self.using].close()


class SyncStatusTracker:
    """One SyncStatus row per run; rows are updated in place and never deleted."""

    def __init__(self, using: str = 'default'):
        self.using = using

    @property
    def _statuses(self):
        return SyncStatus.objects.using(self.using)

    def start(self, shop_name: str) -> str:
        sync_id = uuid.uuid4().hex
        self._create(
            sync_id=sync_id,
            shop_name=shop_name,
            status=SyncStatus.Status.STARTED,
            progress=0,
            message="Sync process started",
        )
        return sync_id

    def fail(self, shop_name: str, message: str) -> str:
        """Record a run that ended before it could start (e.g. bad credential)."""
        sync_id = uuid.uuid4().hex
        self._create(
            sync_id=sync_id,
            shop_name=shop_name,
            status=SyncStatus.Status.FAILED,
            progress=0,
            message=message,
        )
        return sync_id

    def update(self, sync_id: str, status: str, progress: float, message: str, **counters):
        try:
            record = self._statuses.get(sync_id=sync_id)
            record.status = status
            record.progress = progress
            record.message = message
            for name, value in counters.items():
                setattr(record, name, value)
            record.save()
        except (DatabaseError, SyncStatus.DoesNotExist) as exc:
            raise StorageError(f"Failed to update sync status {sync_id}: {exc}") from exc

    def get(self, sync_id: str) -> Optional[SyncStatus]:
        """Return the status row of a run, or None."""
        try:
            return self._statuses.filter(sync_id=sync_id).first()
        except DatabaseError as exc:
            raise StorageError(f"Failed to read sync status {sync_id}: {exc}") from exc

    def _create(self, **fields):
        try:
            self._statuses.create(**fields)
        except DatabaseError as exc:
            raise StorageError(f"Failed to create sync status: {exc}") from exc


def resolve_credential(shop: str, using: str = 'default') -> Optional[ShopSession]:
    """Return the stored session for `shop`, or None if the shop never installed."""
    try:
        return ShopSession.objects.using(using).filter(shop=shop).first()
    except DatabaseError as exc:
        raise StorageError(f"Failed to load session for {shop}: {exc}") from exc
