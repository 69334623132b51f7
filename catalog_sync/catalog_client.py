import logging
from dataclasses import dataclass, field
from typing import Optional

import requests
from django.conf import settings

from .exceptions import AuthError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10

PRODUCT_WEBHOOKS = (
    ('PRODUCTS_CREATE', '/webhooks/products/create'),
    ('PRODUCTS_UPDATE', '/webhooks/products/update'),
    ('PRODUCTS_DELETE', '/webhooks/products/delete'),
)

_IMAGE_FIELDS = """
    id
    url
    altText
    width
    height
"""

PRODUCTS_QUERY = """
query GetProductImages($limit: Int!, $cursor: String) {
  products(first: $limit, after: $cursor) {
    pageInfo {
      hasNextPage
      endCursor
    }
    edges {
      node {
        id
        title
        handle
        images(first: 10) {
          edges {
            node {%(image)s}
          }
        }
        variants(first: 100) {
          edges {
            node {
              id
              title
              price
              sku
              image {%(image)s}
            }
          }
        }
        featuredImage {%(image)s}
      }
    }
  }
}
""" % {'image': _IMAGE_FIELDS}

WEBHOOK_SUBSCRIPTION_MUTATION = """
mutation webhookSubscriptionCreate($topic: WebhookSubscriptionTopic!, $webhookSubscription: WebhookSubscriptionInput!) {
  webhookSubscriptionCreate(topic: $topic, webhookSubscription: $webhookSubscription) {
    webhookSubscription {
      id
    }
    userErrors {
      field
      message
    }
  }
}
"""


def check_credential(credential) -> str:
    """Return the credential's shop domain, or raise AuthError if it cannot be used."""
    shop = getattr(credential, 'shop', None)
    token = getattr(credential, 'access_token', None)
    if not shop or not token:
        raise AuthError(f"Invalid session or missing access token for shop={shop or '<unknown>'}")
    return shop


@dataclass
class CatalogPage:
    product_edges: list = field(default_factory=list)
    has_next_page: bool = False
    end_cursor: Optional[str] = None


class CatalogClient:
    """
    Thin client for the shop's Admin GraphQL API.

    One HTTP request per call and no retries: a failed page aborts the
    whole sync, which is re-run from the first page.
    """

    def __init__(self, session: Optional[requests.Session] = None):
        self._api_version = settings.CATALOG_API_VERSION
        self._timeout = settings.CATALOG_API_TIMEOUT
        self._session = session or requests.Session()
        self._session.headers.update({'Content-Type': 'application/json'})

    def fetch_page(self, credential, page_size: int = DEFAULT_PAGE_SIZE,
                   cursor: Optional[str] = None) -> CatalogPage:
        """Fetch one page of products; `cursor=None` requests the first page."""
        shop = check_credential(credential)
        data = self._execute(
            credential,
            PRODUCTS_QUERY,
            {'limit': page_size, 'cursor': cursor},
            context=f"shop={shop} cursor={cursor!r}",
        )

        products = (data.get('data') or {}).get('products')
        if not isinstance(products, dict):
            raise UpstreamError(
                f"Malformed catalog response for shop={shop} cursor={cursor!r}: missing data.products"
            )
        edges = products.get('edges')
        page_info = products.get('pageInfo')
        if not isinstance(edges, list) or not isinstance(page_info, dict):
            raise UpstreamError(
                f"Malformed catalog response for shop={shop} cursor={cursor!r}: "
                f"missing products.edges or products.pageInfo"
            )

        logger.debug("Fetched %d product(s) for %s (cursor=%r).", len(edges), shop, cursor)
        return CatalogPage(
            product_edges=edges,
            has_next_page=bool(page_info.get('hasNextPage')),
            end_cursor=page_info.get('endCursor'),
        )

    def subscribe_webhook(self, credential, topic: str, callback_url: str) -> bool:
        """Create an HTTP webhook subscription. Returns False on user errors."""
        shop = check_credential(credential)
        data = self._execute(
            credential,
            WEBHOOK_SUBSCRIPTION_MUTATION,
            {
                'topic': topic,
                'webhookSubscription': {'callbackUrl': callback_url, 'format': 'JSON'},
            },
            context=f"shop={shop} topic={topic}",
        )
        payload = (data.get('data') or {}).get('webhookSubscriptionCreate') or {}
        user_errors = payload.get('userErrors') or []
        if user_errors:
            logger.warning(
                "Webhook %s for %s rejected: %s",
                topic, shop, '; '.join(err.get('message', '') for err in user_errors),
            )
            return False
        logger.info("Webhook %s registered for %s -> %s.", topic, shop, callback_url)
        return True

    def register_product_webhooks(self, credential, base_url: str) -> bool:
        """Subscribe the product create/update/delete topics; True only if all succeed."""
        base_url = base_url.rstrip('/')
        ok = True
        for topic, path in PRODUCT_WEBHOOKS:
            ok = self.subscribe_webhook(credential, topic, f"{base_url}{path}") and ok
        return ok

    def _endpoint(self, shop: str) -> str:
        return f"https://{shop}/admin/api/{self._api_version}/graphql.json"

    def _execute(self, credential, query: str, variables: dict, context: str) -> dict:
        try:
            response = self._session.post(
                self._endpoint(credential.shop),
                json={'query': query, 'variables': variables},
                headers={'X-Shopify-Access-Token': credential.access_token},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamError(f"Catalog request failed ({context}): {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthError(f"Catalog API rejected credential ({context}): HTTP {response.status_code}")
        if not response.ok:
            raise UpstreamError(
                f"Catalog API returned HTTP {response.status_code} ({context}): {response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError(f"Catalog API returned non-JSON body ({context})") from exc
        if not isinstance(data, dict):
            raise UpstreamError(f"Catalog API returned unexpected body ({context})")

        errors = data.get('errors')
        if errors:
            if not isinstance(errors, list):
                errors = [errors]
            messages = '; '.join(
                err.get('message', str(err)) if isinstance(err, dict) else str(err)
                for err in errors
            )
            raise UpstreamError(f"Catalog API GraphQL errors ({context}): {messages}")
        return data
