"""Filter composition, debouncing and query translation."""

from .criteria import (
    FieldKind,
    FieldSpec,
    FilterCriteria,
    FilterComposer,
    DerivedDateRange,
    derive_date_range,
    SEARCH_FIELD,
    DEFAULT_LOOKBACK_DAYS,
)
from .debounce import Debouncer
from .translator import QueryTranslator, encode_query

__all__ = [
    # Criteria
    "FieldKind",
    "FieldSpec",
    "FilterCriteria",
    "FilterComposer",
    "DerivedDateRange",
    "derive_date_range",
    "SEARCH_FIELD",
    "DEFAULT_LOOKBACK_DAYS",
    # Debounce
    "Debouncer",
    # Translation
    "QueryTranslator",
    "encode_query",
]
