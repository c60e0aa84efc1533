"""Parsing of the paginated response envelope.

Endpoints wrap their records differently:

    {"results": {"docs": [...], "totalPages": 3, "totalCount": 237}}
    {"results": {"data": [...], "total_pages": 3}}
    {"docs": [...], "total_pages": 3}
    [...]

The parser probes each known key path and reports totals as None when the
backend did not send them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import MalformedResponseError, UnauthorizedError

DOCS_KEYS = ("docs", "data")
TOTAL_PAGES_KEYS = ("totalPages", "total_pages", "pages")
TOTAL_COUNT_KEYS = ("totalCount", "total_count", "totalDocs", "total")

FORCE_LOGOUT_MESSAGE = "Could not verify user"


@dataclass
class PageResponse:
    """One page of records plus whatever totals the backend reported."""

    docs: List[Dict[str, Any]] = field(default_factory=list)
    total_pages: Optional[int] = None
    total_count: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.docs

    def pages_or_default(self, default: int = 1) -> int:
        """Reported page count, or default when unknown."""
        return self.total_pages if self.total_pages is not None else default


def _probe_int(container: Dict[str, Any], keys) -> Optional[int]:
    for key in keys:
        value = container.get(key)
        if value is None or isinstance(value, bool):
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return None


def is_forced_logout(payload: Any) -> bool:
    """Check for the backend's 200-status "session revoked" answer."""
    if not isinstance(payload, dict) or payload.get("success") is not False:
        return False
    results = payload.get("results")
    if isinstance(results, dict) and results.get("force_logout"):
        return True
    return payload.get("message") == FORCE_LOGOUT_MESSAGE


def parse_envelope(payload: Any) -> PageResponse:
    """
    Extract records and totals from a decoded JSON body.

    Args:
        payload: Decoded response body.

    Returns:
        PageResponse with docs and optional totals.

    Raises:
        UnauthorizedError: If the body signals a forced logout.
        MalformedResponseError: If the record array is not a list.
    """
    if isinstance(payload, list):
        return PageResponse(docs=payload)

    if not isinstance(payload, dict):
        raise MalformedResponseError(
            f"Expected a JSON object or array, got {type(payload).__name__}"
        )

    if is_forced_logout(payload):
        raise UnauthorizedError(
            payload.get("message") or FORCE_LOGOUT_MESSAGE, status_code=401
        )

    container = payload.get("results")
    if isinstance(container, list):
        return PageResponse(
            docs=container,
            total_pages=_probe_int(payload, TOTAL_PAGES_KEYS),
            total_count=_probe_int(payload, TOTAL_COUNT_KEYS),
        )
    if not isinstance(container, dict):
        container = payload

    docs: Any = []
    for key in DOCS_KEYS:
        if container.get(key) is not None:
            docs = container[key]
            break

    if not isinstance(docs, list):
        raise MalformedResponseError(
            f"Expected a list of records, got {type(docs).__name__}"
        )

    return PageResponse(
        docs=docs,
        total_pages=_probe_int(container, TOTAL_PAGES_KEYS),
        total_count=_probe_int(container, TOTAL_COUNT_KEYS),
    )
