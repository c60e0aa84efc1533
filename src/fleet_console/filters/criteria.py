"""Canonical filter criteria and the composer that produces them.

Raw per-field inputs (text boxes, selects, date pickers) are merged into a
FilterCriteria. Unset inputs are dropped rather than kept as empty strings,
so composing the same inputs twice always yields equal criteria and the
backend query stays reproducible.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from ..config.config_loader import EndpointConfig
from ..config.logging_config import get_logger
from ..errors import InvalidFilterError

logger = get_logger("filters")

SEARCH_FIELD = "search_term"

# Only-end-date ranges reach back this many days
DEFAULT_LOOKBACK_DAYS = 30

TRUE_VALUES = {"true", "1", "yes"}
FALSE_VALUES = {"false", "0", "no"}


class FieldKind(Enum):
    """How a raw filter input is normalized."""
    TEXT = "text"
    IDENTIFIER = "identifier"
    ENUM = "enum"
    BOOLEAN = "boolean"
    DATE = "date"
    NUMBER = "number"


@dataclass(frozen=True)
class FieldSpec:
    """A filter input accepted by an endpoint."""

    name: str
    kind: FieldKind = FieldKind.TEXT
    choices: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DerivedDateRange:
    """Date range after applying the derivation rules. start <= end when both are set."""

    start: Optional[date] = None
    end: Optional[date] = None


@dataclass(frozen=True)
class FilterCriteria:
    """Normalized, backend-agnostic set of active search constraints."""

    values: Dict[str, Any] = field(default_factory=dict)
    identifier_field: Optional[str] = None

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def __contains__(self, name: str) -> bool:
        return name in self.values

    @property
    def search_term(self) -> Optional[str]:
        return self.values.get(SEARCH_FIELD)

    @property
    def identifier(self) -> Optional[str]:
        """Value of the exact-match identifier field, if the endpoint has one."""
        if not self.identifier_field:
            return None
        return self.values.get(self.identifier_field)

    @property
    def is_empty(self) -> bool:
        """Check if no filter is active (showing all data)."""
        return not self.values

    @property
    def active_filter_count(self) -> int:
        """Count of active filters."""
        return len(self.values)

    def get_summary(self) -> str:
        """Get a human-readable summary of active filters."""
        parts = []
        for name, value in self.values.items():
            if isinstance(value, bool):
                value = "yes" if value else "no"
            parts.append(f"{name}: {value}")
        return " | ".join(parts) if parts else "All data (no filters)"

    def __hash__(self) -> int:
        # Values are scalars; key order does not affect equality
        return hash((tuple(sorted(self.values.items())), self.identifier_field))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary of active values."""
        return dict(self.values)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        identifier_field: Optional[str] = None,
    ) -> "FilterCriteria":
        """Create from a dictionary, dropping unset values."""
        return cls(
            values={k: v for k, v in data.items() if v is not None and v != ""},
            identifier_field=identifier_field,
        )


def _coerce_date(value: Union[str, date, None]) -> Optional[date]:
    """Parse a date, datetime or ISO string into a date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise InvalidFilterError(f"Invalid date value: {value!r}")


def derive_date_range(
    start: Union[str, date, None] = None,
    end: Union[str, date, None] = None,
    today: Optional[date] = None,
) -> DerivedDateRange:
    """
    Fill in and order a partial date range.

    Args:
        start: Start date input (date or ISO string), may be unset.
        end: End date input (date or ISO string), may be unset.
        today: Reference date for open-ended ranges (defaults to date.today()).

    Returns:
        DerivedDateRange where start <= end whenever both are set.
    """
    start_date = _coerce_date(start)
    end_date = _coerce_date(end)

    if start_date and not end_date:
        end_date = today or date.today()
    elif end_date and not start_date:
        start_date = end_date - timedelta(days=DEFAULT_LOOKBACK_DAYS)

    if start_date and end_date and start_date > end_date:
        start_date, end_date = end_date, start_date

    return DerivedDateRange(start=start_date, end=end_date)


class FilterComposer:
    """Merges raw per-field inputs into canonical FilterCriteria."""

    def __init__(
        self,
        fields: Mapping[str, FieldSpec],
        identifier_field: Optional[str] = None,
        date_range: Optional[Tuple[str, str]] = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize the composer.

        Args:
            fields: Accepted filter inputs keyed by name.
            identifier_field: Name of the case-insensitive exact-match field.
            date_range: (start, end) input names the date rules apply to.
            today: Clock used for open-ended date ranges.
        """
        self.fields = dict(fields)
        if SEARCH_FIELD not in self.fields:
            self.fields[SEARCH_FIELD] = FieldSpec(SEARCH_FIELD, FieldKind.TEXT)
        self.identifier_field = identifier_field
        self.date_range = date_range
        self._today = today

    @classmethod
    def from_endpoint(
        cls,
        endpoint: EndpointConfig,
        today: Callable[[], date] = date.today,
    ) -> "FilterComposer":
        """Build a composer from an endpoint's field table."""
        fields = {
            name: FieldSpec(name, FieldKind(kind), endpoint.choices.get(name, ()))
            for name, kind in endpoint.fields.items()
        }
        return cls(
            fields,
            identifier_field=endpoint.identifier_field,
            date_range=endpoint.date_range,
            today=today,
        )

    def compose(self, raw: Union[Mapping[str, Any], FilterCriteria]) -> FilterCriteria:
        """
        Produce canonical criteria from raw inputs.

        Args:
            raw: Field name to raw input value, or already composed criteria.

        Returns:
            FilterCriteria holding only active, normalized values.

        Raises:
            InvalidFilterError: On unknown fields or unparseable values.
        """
        if isinstance(raw, FilterCriteria):
            raw = raw.to_dict()

        values: Dict[str, Any] = {}
        for name, value in raw.items():
            spec = self.fields.get(name)
            if spec is None:
                raise InvalidFilterError(f"Unknown filter field '{name}'")
            normalized = self._normalize(spec, value)
            if normalized is not None:
                values[name] = normalized

        if self.date_range:
            start_key, end_key = self.date_range
            derived = derive_date_range(
                values.get(start_key), values.get(end_key), today=self._today()
            )
            if derived.start:
                values[start_key] = derived.start.isoformat()
            if derived.end:
                values[end_key] = derived.end.isoformat()

        # Field table order keeps the canonical record stable
        ordered = {name: values[name] for name in self.fields if name in values}
        logger.debug(f"Composed filters: {ordered}")
        return FilterCriteria(values=ordered, identifier_field=self.identifier_field)

    def update(self, criteria: FilterCriteria, **changes: Any) -> FilterCriteria:
        """Recompose criteria after changing some fields (None or "" clears a field)."""
        raw = criteria.to_dict()
        raw.update(changes)
        return self.compose(raw)

    def _normalize(self, spec: FieldSpec, value: Any) -> Any:
        """Normalize one raw value; None means the field is inactive."""
        if value is None:
            return None

        kind = spec.kind
        if kind == FieldKind.BOOLEAN:
            return self._normalize_boolean(spec, value)
        if kind == FieldKind.NUMBER:
            return self._normalize_number(spec, value)
        if kind == FieldKind.DATE:
            parsed = _coerce_date(value)
            return parsed.isoformat() if parsed else None

        text = str(value).strip()
        if not text:
            return None

        if kind == FieldKind.IDENTIFIER or spec.name == self.identifier_field:
            return text.upper()

        if kind == FieldKind.ENUM and spec.choices and text not in spec.choices:
            raise InvalidFilterError(
                f"Invalid value {text!r} for '{spec.name}'. Expected one of: {', '.join(spec.choices)}"
            )

        return text

    @staticmethod
    def _normalize_boolean(spec: FieldSpec, value: Any) -> Optional[bool]:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)

        text = str(value).strip().lower()
        if not text:
            return None
        if text in TRUE_VALUES:
            return True
        if text in FALSE_VALUES:
            return False
        raise InvalidFilterError(f"Invalid boolean value {value!r} for '{spec.name}'")

    @staticmethod
    def _normalize_number(spec: FieldSpec, value: Any) -> Union[int, float, None]:
        if isinstance(value, bool):
            raise InvalidFilterError(f"Invalid number value {value!r} for '{spec.name}'")

        if isinstance(value, (int, float)):
            number = value
        else:
            text = str(value).strip()
            if not text:
                return None
            try:
                number = float(text)
            except ValueError:
                raise InvalidFilterError(f"Invalid number value {value!r} for '{spec.name}'")

        if isinstance(number, float):
            if math.isnan(number) or math.isinf(number):
                return None
            if number.is_integer():
                return int(number)
        return number
