"""Backend retrieval: single-page fetches and complete-dataset collection."""

from .envelope import PageResponse, parse_envelope, is_forced_logout
from .client import PagedFetcher, create_client, is_token_expired
from .bulk import BulkExporter, CancelToken, PageProgress

__all__ = [
    "PageResponse",
    "parse_envelope",
    "is_forced_logout",
    "PagedFetcher",
    "create_client",
    "is_token_expired",
    "BulkExporter",
    "CancelToken",
    "PageProgress",
]
