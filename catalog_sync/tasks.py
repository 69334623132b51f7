import logging

from celery import shared_task
from celery.signals import worker_process_shutdown
from django.conf import settings

from .catalog_client import CatalogClient
from .exceptions import CatalogSyncError, StorageError
from .store import ProductStore, SyncStatusTracker, resolve_credential
from .sync import ProductSyncer

logger = logging.getLogger(__name__)


def build_syncer(page_size=None) -> ProductSyncer:
    using = settings.CATALOG_SYNC_DATABASE
    return ProductSyncer(
        client=CatalogClient(),
        store=ProductStore(using=using),
        tracker=SyncStatusTracker(using=using),
        page_size=page_size,
    )


def _storage_failure(shop: str, exc: StorageError) -> dict:
    logger.error("Could not resolve session for %s: %s", shop, exc)
    return {'shop_name': shop, 'success': False, 'error': f"Storage error: {exc}"}


@shared_task(name='catalog_sync.sync_shop')
def sync_shop_task(shop: str) -> dict:
    """Run a full product sync for a shop using its stored session."""
    try:
        credential = resolve_credential(shop, using=settings.CATALOG_SYNC_DATABASE)
    except StorageError as exc:
        return _storage_failure(shop, exc)
    if credential is None:
        logger.warning("No stored session for %s – sync not started.", shop)
        return {'shop_name': shop, 'success': False, 'error': 'No stored session'}
    return build_syncer().sync_shop(shop, credential).as_dict()


@shared_task(name='catalog_sync.handle_product_webhook')
def handle_product_webhook(topic: str, shop: str) -> dict:
    """
    React to a products/create, products/update or products/delete event.

    Any product event re-runs the full sync for the owning shop rather than
    patching a single document. Events for shops without a stored session
    are dropped.
    """
    logger.info("Received %s webhook from %s.", topic, shop)
    try:
        credential = resolve_credential(shop, using=settings.CATALOG_SYNC_DATABASE)
    except StorageError as exc:
        return _storage_failure(shop, exc)
    if credential is None:
        logger.warning("Dropping %s webhook for %s: no stored session.", topic, shop)
        return {'shop_name': shop, 'success': False, 'error': 'No stored session', 'dropped': True}

    result = build_syncer().sync_shop(shop, credential)
    logger.info(
        "%s webhook sync for %s: %s",
        topic, shop, 'ok' if result.success else result.error,
    )
    return result.as_dict()


@shared_task(name='catalog_sync.handle_app_installed')
def handle_app_installed(shop: str) -> dict:
    """Register product webhooks and run the initial full sync after install."""
    try:
        credential = resolve_credential(shop, using=settings.CATALOG_SYNC_DATABASE)
    except StorageError as exc:
        return _storage_failure(shop, exc)
    if credential is None:
        logger.error("App installed on %s but no session was stored.", shop)
        return {'shop_name': shop, 'success': False, 'error': 'No stored session'}

    base_url = settings.CATALOG_SYNC_WEBHOOK_BASE_URL
    if base_url:
        try:
            registered = CatalogClient().register_product_webhooks(credential, base_url)
        except CatalogSyncError as exc:
            logger.error("Webhook registration failed for %s: %s", shop, exc)
            registered = False
        logger.info("Webhook registration %s for %s.", 'successful' if registered else 'failed', shop)
    else:
        logger.warning("CATALOG_SYNC_WEBHOOK_BASE_URL not set – skipping webhook registration for %s.", shop)

    result = build_syncer().sync_shop(shop, credential)
    if result.success:
        logger.info(
            "Initial product sync for %s: processed %d products (%d inserted, %d updated).",
            shop, result.total_processed, result.inserted, result.updated,
        )
    else:
        logger.error("Initial product sync for %s failed: %s", shop, result.error)
    return result.as_dict()


@worker_process_shutdown.connect
def close_store_connection(**kwargs):
    ProductStore(using=settings.CATALOG_SYNC_DATABASE).close()
