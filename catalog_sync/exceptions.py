class CatalogSyncError(Exception):
    """Base class for failures raised by the sync components."""


class AuthError(CatalogSyncError):
    """Missing or rejected shop credential."""


class UpstreamError(CatalogSyncError):
    """Catalog API unreachable, non-2xx, or returned a malformed payload."""


class StorageError(CatalogSyncError):
    """The product or status table could not be read or written."""
