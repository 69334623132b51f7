from unittest.mock import patch

import pytest
from django.db import DatabaseError

from catalog_sync.exceptions import StorageError
from catalog_sync.models import ProductDocument, ShopSession, SyncStatus
from catalog_sync.store import ProductStore, SyncStatusTracker, resolve_credential

SHOP = 'demo.myshopify.com'
OTHER_SHOP = 'other.myshopify.com'


def _stored_ids(shop):
    return set(ProductDocument.objects.filter(shop_name=shop).values_list('product_id', flat=True))


def _doc(product_id, title='Product'):
    return {
        'product_id': product_id,
        'title': title,
        'handle': title.lower(),
        'featured_image': None,
        'images': [],
        'variants': [],
    }


# ---------------------------------------------------------------------------
# upsert_page
# ---------------------------------------------------------------------------

@pytest.mark.django_db
class TestUpsertPage:
    def test_new_documents_are_inserted(self):
        counts = ProductStore().upsert_page(SHOP, [_doc('p1'), _doc('p2')])
        assert (counts.inserted, counts.updated) == (2, 0)
        assert ProductDocument.objects.filter(shop_name=SHOP).count() == 2

    def test_second_run_is_idempotent_and_counts_updates(self):
        store = ProductStore()
        docs = [_doc('p1'), _doc('p2')]
        store.upsert_page(SHOP, docs)
        before = list(
            ProductDocument.objects.order_by('product_id').values('product_id', 'title', 'handle', 'images', 'variants')
        )

        counts = store.upsert_page(SHOP, docs)

        after = list(
            ProductDocument.objects.order_by('product_id').values('product_id', 'title', 'handle', 'images', 'variants')
        )
        assert (counts.inserted, counts.updated) == (0, 2)
        assert before == after

    def test_update_replaces_fields_and_touches_updated_at(self):
        store = ProductStore()
        store.upsert_page(SHOP, [_doc('p1', title='Old')])
        first = ProductDocument.objects.get(shop_name=SHOP, product_id='p1')

        store.upsert_page(SHOP, [_doc('p1', title='New')])

        second = ProductDocument.objects.get(shop_name=SHOP, product_id='p1')
        assert second.title == 'New'
        assert second.updated_at >= first.updated_at

    def test_same_product_id_in_different_shops_is_separate(self):
        store = ProductStore()
        store.upsert_page(SHOP, [_doc('p1')])
        counts = store.upsert_page(OTHER_SHOP, [_doc('p1')])
        assert counts.inserted == 1
        assert ProductDocument.objects.filter(product_id='p1').count() == 2

    def test_database_error_becomes_storage_error(self):
        with patch('django.db.models.query.QuerySet.update_or_create', side_effect=DatabaseError('gone')):
            with pytest.raises(StorageError, match='gone'):
                ProductStore().upsert_page(SHOP, [_doc('p1')])


# ---------------------------------------------------------------------------
# prune_missing
# ---------------------------------------------------------------------------

@pytest.mark.django_db
class TestPruneMissing:
    def test_deletes_only_unseen_products_of_the_shop(self):
        store = ProductStore()
        store.upsert_page(SHOP, [_doc('p1'), _doc('p2'), _doc('p3')])
        store.upsert_page(OTHER_SHOP, [_doc('p3')])

        deleted = store.prune_missing(SHOP, {'p1', 'p2'})

        assert deleted == 1
        assert _stored_ids(SHOP) == {'p1', 'p2'}
        assert _stored_ids(OTHER_SHOP) == {'p3'}

    def test_nothing_to_delete(self):
        store = ProductStore()
        store.upsert_page(SHOP, [_doc('p1')])
        assert store.prune_missing(SHOP, ['p1']) == 0

    def test_empty_seen_set_clears_the_shop(self):
        store = ProductStore()
        store.upsert_page(SHOP, [_doc('p1'), _doc('p2')])
        assert store.prune_missing(SHOP, set()) == 2
        assert _stored_ids(SHOP) == set()

    def test_database_error_becomes_storage_error(self):
        ProductStore().upsert_page(SHOP, [_doc('p1')])
        with patch('django.db.models.query.QuerySet.delete', side_effect=DatabaseError('disk I/O error')):
            with pytest.raises(StorageError, match='disk I/O error'):
                ProductStore().prune_missing(SHOP, set())
        assert _stored_ids(SHOP) == {'p1'}


# ---------------------------------------------------------------------------
# SyncStatusTracker
# ---------------------------------------------------------------------------

@pytest.mark.django_db
class TestSyncStatusTracker:
    def test_start_creates_started_record(self):
        tracker = SyncStatusTracker()
        sync_id = tracker.start(SHOP)

        record = tracker.get(sync_id)
        assert record.shop_name == SHOP
        assert record.status == SyncStatus.Status.STARTED
        assert record.progress == 0
        assert record.message == 'Sync process started'

    def test_each_start_gets_a_new_id(self):
        tracker = SyncStatusTracker()
        assert tracker.start(SHOP) != tracker.start(SHOP)
        assert SyncStatus.objects.count() == 2

    def test_update_mutates_in_place(self):
        tracker = SyncStatusTracker()
        sync_id = tracker.start(SHOP)

        tracker.update(sync_id, SyncStatus.Status.IN_PROGRESS, 42.5, 'halfway', processed=10, inserted=7)

        record = tracker.get(sync_id)
        assert SyncStatus.objects.count() == 1
        assert record.status == SyncStatus.Status.IN_PROGRESS
        assert record.progress == 42.5
        assert record.message == 'halfway'
        assert (record.processed, record.inserted) == (10, 7)

    def test_update_unknown_sync_raises_storage_error(self):
        with pytest.raises(StorageError):
            SyncStatusTracker().update('missing', SyncStatus.Status.COMPLETED, 100, 'done')

    def test_fail_writes_terminal_record(self):
        tracker = SyncStatusTracker()
        sync_id = tracker.fail(SHOP, 'Invalid session')
        record = tracker.get(sync_id)
        assert record.status == SyncStatus.Status.FAILED
        assert record.message == 'Invalid session'

    def test_get_unknown_returns_none(self):
        assert SyncStatusTracker().get('nope') is None


# ---------------------------------------------------------------------------
# resolve_credential
# ---------------------------------------------------------------------------

@pytest.mark.django_db
class TestResolveCredential:
    def test_returns_stored_session(self):
        ShopSession.objects.create(shop=SHOP, access_token='tok')
        assert resolve_credential(SHOP).access_token == 'tok'

    def test_unknown_shop_returns_none(self):
        assert resolve_credential('nobody.myshopify.com') is None
