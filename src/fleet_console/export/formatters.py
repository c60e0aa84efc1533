"""Cell formatters for exported records.

Each formatter takes a raw field value and returns display text, or None
when the value is missing so the column default ("N/A") applies.
"""

from datetime import date, datetime
from typing import Any, Mapping, Optional

# Firmware reports this date when the clock was never set
DEFAULT_DEVICE_DATE = date(2004, 1, 1)

NOT_AVAILABLE = "Not Available"
INVALID_FORMAT = "Invalid Format"


def is_missing(value: Any) -> bool:
    """None and blank strings count as missing."""
    return value is None or (isinstance(value, str) and not value.strip())


def _number_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_datetime(value: Any) -> Optional[str]:
    """
    Format an ISO timestamp as DD/MM/YYYY hh:mm:ss AM/PM.

    The timestamp is shown in its own UTC offset, not converted to local
    time.

    Args:
        value: ISO 8601 string or datetime.

    Returns:
        Formatted text, "Not Available" for the firmware default date,
        "Invalid Format" for unparseable input, None when missing.
    """
    if is_missing(value):
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError:
            return INVALID_FORMAT

    if parsed.date() == DEFAULT_DEVICE_DATE:
        return NOT_AVAILABLE
    return parsed.strftime("%d/%m/%Y %I:%M:%S %p")


def format_location(location: Any) -> Optional[str]:
    """Render a GeoJSON-style {coordinates: [lon, lat]} as "lat, lon"."""
    if not isinstance(location, Mapping):
        return None
    coordinates = location.get("coordinates")
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) < 2:
        return None
    lon, lat = coordinates[0], coordinates[1]
    if lon is None or lat is None:
        return None
    return f"{_number_text(lat)}, {_number_text(lon)}"


def format_voltage(value: Any) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return f"{value:.2f} V"


def format_sd_card(available: Any) -> str:
    if available is True:
        return "Available (Saved)"
    return "Not Available (Not Saved)"


def format_upper(value: Any) -> Optional[str]:
    if is_missing(value):
        return None
    return str(value).upper()


def format_on_off(value: Any) -> Optional[str]:
    """Peripherals flag: True means the peripherals were turned off."""
    if value is True:
        return "Off"
    if value is False:
        return "On"
    return None


def format_active(status: Any) -> str:
    """Device status given either as "active"/"inactive" or a boolean."""
    if isinstance(status, str):
        return "Active" if status.strip().lower() == "active" else "Inactive"
    return "Active" if status else "Inactive"


def format_resolved(value: Any) -> str:
    return "Resolved" if value else "Pending"


def format_settings(record: Mapping[str, Any]) -> str:
    timeout = record.get("current_gps_timeout_ms")
    sleep = record.get("current_sleep_time_min")
    timeout_text = "N/A" if is_missing(timeout) else _number_text(timeout)
    sleep_text = "N/A" if is_missing(sleep) else _number_text(sleep)
    return f"GPS Timeout: {timeout_text}ms, Sleep: {sleep_text}min"


def nested_value(record: Mapping[str, Any], parent: str, key: str) -> Any:
    """Value of record[parent][key] when parent is an object, else None."""
    container = record.get(parent)
    if isinstance(container, Mapping):
        return container.get(key)
    return None
