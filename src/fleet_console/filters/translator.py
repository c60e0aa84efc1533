"""Translate canonical filter criteria into backend query parameters."""

from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

from ..config.config_loader import EndpointConfig
from .criteria import FilterCriteria


def _encode_value(value: Any) -> Optional[str]:
    """Encode a criteria value as the backend expects it; None if inactive."""
    if value is None:
        return None
    if isinstance(value, bool):
        # Backend enum contract: literal strings, never native booleans
        return "true" if value else "false"
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    text = str(value)
    if not text.strip():
        return None
    return text


class QueryTranslator:
    """
    Maps FilterCriteria to query parameters for one endpoint.

    Usage:
        translator = QueryTranslator.from_endpoint(get_endpoint_config("alerts"))
        params = translator.to_query_params(criteria, page=1, limit=10)
    """

    def __init__(self, param_names: Optional[Mapping[str, str]] = None):
        """
        Initialize translator.

        Args:
            param_names: Filter field name -> backend parameter name renames
                (e.g. {"search_term": "search"}).
        """
        self.param_names = dict(param_names or {})

    @classmethod
    def from_endpoint(cls, endpoint: EndpointConfig) -> "QueryTranslator":
        return cls(endpoint.param_names)

    def to_query_params(self, criteria: FilterCriteria, page: int, limit: int) -> Dict[str, str]:
        """
        Build query parameters for one page request.

        Args:
            criteria: Canonical filter criteria.
            page: 1-based page number.
            limit: Records per page.

        Returns:
            Ordered dict of string parameters: page, limit, then filters sorted
            by parameter name.
        """
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise ValueError(f"page must be an integer >= 1, got {page!r}")
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValueError(f"limit must be an integer > 0, got {limit!r}")

        filters: Dict[str, str] = {}
        for name, value in criteria.values.items():
            encoded = _encode_value(value)
            if encoded is None:
                continue
            filters[self.param_names.get(name, name)] = encoded

        params = {"page": str(page), "limit": str(limit)}
        for key in sorted(filters):
            if key not in params:
                params[key] = filters[key]
        return params


def encode_query(params: Mapping[str, str]) -> str:
    """Canonical query string for a parameter dict (stable cache/test key)."""
    return urlencode(sorted(params.items()))
