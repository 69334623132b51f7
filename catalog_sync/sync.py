import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Optional

from django.conf import settings
from django.core.cache import cache

from .catalog_client import CatalogClient, check_credential
from .exceptions import AuthError, CatalogSyncError, StorageError
from .mapper import map_page, product_ids
from .models import SyncStatus
from .store import ProductStore, SyncStatusTracker

logger = logging.getLogger(__name__)

LOCK_KEY = 'catalog_sync:lock:%s'
RERUN_KEY = 'catalog_sync:rerun:%s'
MAX_IN_PROGRESS = 99.99


@dataclass
class SyncResult:
    shop_name: str
    success: bool
    sync_id: Optional[str] = None
    total_processed: int = 0
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    duration: float = 0.0
    error: Optional[str] = None
    skipped: bool = False
    rerun_queued: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


def estimate_progress(processed: int, page_size: int, previous: float = 0.0) -> float:
    """
    Heuristic progress estimate, not a true percentage.

    The total is unknown until pagination ends, so the estimate approaches
    100 asymptotically, never falls below the previously reported value and
    is capped at MAX_IN_PROGRESS; only a completed run reports 100.
    """
    if processed <= 0:
        return previous
    estimate = processed / (processed + page_size) * 100
    return min(round(max(previous, estimate), 2), MAX_IN_PROGRESS)


@contextmanager
def shop_lock(shop_name: str, timeout: int):
    """
    Per-shop run lock; yields False when another run holds it.

    The lock value is a per-run token so a run that outlived the timeout
    never releases a lock taken over by a later run.
    """
    key = LOCK_KEY % shop_name
    token = uuid.uuid4().hex
    acquired = cache.add(key, token, timeout)
    try:
        yield acquired
    finally:
        if acquired and cache.get(key) == token:
            cache.delete(key)


class ProductSyncer:
    """
    Runs a full catalog sync for one shop.

    States: started -> in_progress -> completed | failed | error.
    Every run paginates from the first page; prune happens only after the
    last page was stored.
    """

    def __init__(self, client: CatalogClient, store: ProductStore, tracker: SyncStatusTracker,
                 page_size: Optional[int] = None):
        self.client = client
        self.store = store
        self.tracker = tracker
        self.page_size = page_size or settings.CATALOG_SYNC_PAGE_SIZE

    def sync_shop(self, shop_name: str, credential) -> SyncResult:
        """
        Run a full sync under the shop's lock.

        A request that finds the lock taken marks a rerun as pending; the
        lock holder runs the full sync again once its current run ends, so
        changes that arrive mid-run are still picked up.
        """
        timeout = settings.CATALOG_SYNC_LOCK_TIMEOUT
        rerun_key = RERUN_KEY % shop_name
        result = None
        while True:
            with shop_lock(shop_name, timeout) as acquired:
                if not acquired:
                    if result is not None:
                        return result
                    cache.set(rerun_key, True, timeout)
                    logger.info("Sync already running for %s – rerun queued.", shop_name)
                    return SyncResult(
                        shop_name=shop_name,
                        success=False,
                        skipped=True,
                        rerun_queued=True,
                        error="Sync already in progress; rerun queued",
                    )
                cache.delete(rerun_key)
                result = self.run(shop_name, credential)
            if not cache.get(rerun_key):
                return result
            logger.info("Changes arrived for %s during the last run – syncing again.", shop_name)

    def run(self, shop_name: str, credential) -> SyncResult:
        logger.info("Starting product sync for %s.", shop_name)

        try:
            check_credential(credential)
        except AuthError as exc:
            message = str(exc)
            logger.error("Cannot sync %s: %s", shop_name, message)
            sync_id = self._record_failure(shop_name, message)
            return SyncResult(shop_name=shop_name, success=False, sync_id=sync_id, error=message)

        try:
            sync_id = self.tracker.start(shop_name)
        except StorageError as exc:
            logger.error("Cannot sync %s: %s", shop_name, exc)
            return SyncResult(shop_name=shop_name, success=False, error=str(exc))

        result = SyncResult(shop_name=shop_name, success=False, sync_id=sync_id)
        seen = set()
        progress = 0.0
        started = time.monotonic()

        try:
            cursor = None
            while True:
                page = self.client.fetch_page(credential, self.page_size, cursor)
                if not page.product_edges:
                    break

                documents = map_page(page.product_edges)
                counts = self.store.upsert_page(shop_name, documents)

                result.inserted += counts.inserted
                result.updated += counts.updated
                result.total_processed += len(documents)
                seen.update(product_ids(documents))

                progress = estimate_progress(result.total_processed, self.page_size, progress)
                self.tracker.update(
                    sync_id,
                    SyncStatus.Status.IN_PROGRESS,
                    progress,
                    f"Processing products - {result.total_processed} completed so far",
                    processed=result.total_processed,
                    inserted=result.inserted,
                    updated=result.updated,
                )

                if not page.has_next_page:
                    break
                cursor = page.end_cursor

            result.deleted = self.store.prune_missing(shop_name, seen)
            result.duration = round(time.monotonic() - started, 3)
            result.success = True
            self.tracker.update(
                sync_id,
                SyncStatus.Status.COMPLETED,
                100,
                f"Sync completed: {result.total_processed} products processed "
                f"in {result.duration} seconds",
                processed=result.total_processed,
                inserted=result.inserted,
                updated=result.updated,
                deleted=result.deleted,
            )
        except Exception as exc:
            result.success = False
            result.duration = round(time.monotonic() - started, 3)
            result.error = str(exc)
            self._mark_terminal_failure(sync_id, exc, progress)
            return result

        logger.info(
            "Sync complete for %s. processed=%d, inserted=%d, updated=%d, deleted=%d.",
            shop_name, result.total_processed, result.inserted, result.updated, result.deleted,
        )
        return result

    def _mark_terminal_failure(self, sync_id: str, exc: Exception, progress: float):
        if isinstance(exc, (StorageError, AuthError)):
            status = SyncStatus.Status.FAILED
            message = f"Storage error: {exc}" if isinstance(exc, StorageError) else f"Auth error: {exc}"
        else:
            status = SyncStatus.Status.ERROR
            message = f"Error during sync: {exc}"

        if isinstance(exc, CatalogSyncError):
            logger.error("Sync %s aborted: %s", sync_id, exc)
        else:
            logger.exception("Sync %s aborted by unexpected error.", sync_id)

        try:
            self.tracker.update(sync_id, status, progress, message)
        except StorageError as status_exc:
            logger.error("Could not record %s for sync %s: %s", status, sync_id, status_exc)

    def _record_failure(self, shop_name: str, message: str) -> Optional[str]:
        try:
            return self.tracker.fail(shop_name, message)
        except StorageError as exc:
            logger.error("Could not record failed sync for %s: %s", shop_name, exc)
            return None
