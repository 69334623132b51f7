import logging
from typing import Optional

logger = logging.getLogger(__name__)


def _copy_image(image) -> Optional[dict]:
    """Images are opaque; copy them so documents never alias the raw page."""
    if not isinstance(image, dict):
        return None
    return dict(image)


def _connection_nodes(connection) -> list:
    """Unwrap a GraphQL `{edges: [{node}]}` connection; anything else is empty."""
    if not isinstance(connection, dict):
        return []
    nodes = []
    for edge in connection.get('edges') or []:
        node = edge.get('node') if isinstance(edge, dict) else None
        if isinstance(node, dict):
            nodes.append(node)
    return nodes


def map_variant(node: dict) -> dict:
    return {
        'variantId': node.get('id'),
        'title': node.get('title'),
        'price': node.get('price'),
        'sku': node.get('sku'),
        'image': _copy_image(node.get('image')),
    }


def map_product(node: dict) -> Optional[dict]:
    """
    Flatten one product node into a storage document.

    Returns None (and logs a warning) if the node has no id, since it
    cannot be keyed.
    """
    product_id = node.get('id')
    if not product_id:
        logger.warning("Skipping product node without id (title=%r).", node.get('title'))
        return None

    return {
        'product_id': product_id,
        'title': node.get('title') or '',
        'handle': node.get('handle') or '',
        'featured_image': _copy_image(node.get('featuredImage')),
        'images': [dict(image) for image in _connection_nodes(node.get('images'))],
        'variants': [map_variant(variant) for variant in _connection_nodes(node.get('variants'))],
    }


def map_page(product_edges) -> list[dict]:
    """Map a page of `{node: ...}` edges to documents, preserving page order."""
    documents = []
    for edge in product_edges or []:
        node = edge.get('node') if isinstance(edge, dict) else None
        if not isinstance(node, dict):
            logger.warning("Skipping malformed product edge %r.", edge)
            continue
        document = map_product(node)
        if document is not None:
            documents.append(document)
    return documents


def product_ids(documents) -> list[str]:
    return [document['product_id'] for document in documents]
