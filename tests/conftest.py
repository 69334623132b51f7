import pytest
from django.core.cache import cache

from catalog_sync.models import ShopSession

SHOP = 'demo.myshopify.com'
API_VERSION = '2024-10'
GRAPHQL_URL = f'https://{SHOP}/admin/api/{API_VERSION}/graphql.json'


@pytest.fixture(autouse=True)
def override_settings(settings):
    settings.CATALOG_API_VERSION = API_VERSION
    settings.CATALOG_API_TIMEOUT = 5
    settings.CATALOG_SYNC_PAGE_SIZE = 50
    settings.CATALOG_SYNC_DATABASE = 'default'
    settings.CATALOG_SYNC_WEBHOOK_BASE_URL = ''
    settings.CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'catalog-sync-tests',
        }
    }


@pytest.fixture(autouse=True)
def clear_cache(override_settings):
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def graphql_url():
    return GRAPHQL_URL


@pytest.fixture()
def shop_session(db):
    return ShopSession.objects.create(shop=SHOP, access_token='shpat_test_token', scope='read_products')


@pytest.fixture()
def product_node():
    """Build a raw product node as returned by the catalog API."""
    def _make(product_id, title='Product', with_images=True, with_variants=True):
        node = {
            'id': f'gid://shopify/Product/{product_id}',
            'title': title,
            'handle': title.lower().replace(' ', '-'),
            'featuredImage': None,
        }
        if with_images:
            image = {
                'id': f'gid://shopify/ProductImage/{product_id}1',
                'url': f'https://cdn.example.com/{product_id}.jpg',
                'altText': None,
                'width': 800,
                'height': 600,
            }
            node['featuredImage'] = dict(image)
            node['images'] = {'edges': [{'node': image}]}
        if with_variants:
            node['variants'] = {'edges': [{'node': {
                'id': f'gid://shopify/ProductVariant/{product_id}1',
                'title': 'Default Title',
                'price': '19.99',
                'sku': f'SKU-{product_id}',
                'image': None,
            }}]}
        return node
    return _make


@pytest.fixture()
def products_body():
    """Build a `products` GraphQL response body for a page of nodes."""
    def _make(nodes, has_next_page=False, end_cursor=None):
        return {
            'data': {
                'products': {
                    'pageInfo': {'hasNextPage': has_next_page, 'endCursor': end_cursor},
                    'edges': [{'node': node} for node in nodes],
                }
            }
        }
    return _make
