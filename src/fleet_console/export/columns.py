"""CSV column specifications per endpoint."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping

from ..config.config_loader import ConfigurationError
from . import formatters as fmt

Record = Mapping[str, Any]


@dataclass(frozen=True)
class Column:
    """A CSV column: header text and how to pull the cell out of a record."""

    header: str
    extract: Callable[[Record], Any]
    default: str = "N/A"


def field_column(header: str, key: str, default: str = "N/A") -> Column:
    """Column that copies record[key] unchanged."""
    return Column(header, lambda record: record.get(key), default)


def _scale_columns() -> List[Column]:
    """Columns shared by device data rows and alerts, after State."""
    return [
        field_column("Enclosure", "enclosure"),
        field_column("Calib Switch", "calib_switch"),
        Column("SD Card", lambda r: fmt.format_sd_card(r.get("sd_card_available"))),
        Column("Battery Voltage", lambda r: fmt.format_voltage(r.get("battery_voltage"))),
        Column("GPS Timestamp", lambda r: fmt.format_datetime(r.get("gps_timestamp"))),
        Column("GSM Timestamp", lambda r: fmt.format_datetime(r.get("gsm_timestamp"))),
        Column("RTC Timestamp", lambda r: fmt.format_datetime(r.get("rtc_timestamp"))),
        Column("GPS Location", lambda r: fmt.format_location(r.get("gps_location"))),
        Column("GSM Location", lambda r: fmt.format_location(r.get("gsm_location"))),
        field_column("Factory", "factory_name"),
        field_column("Location", "factory_location"),
    ]


DEVICE_DATA_COLUMNS = [
    field_column("Scale ID", "company_id"),
    field_column("Scale Model", "scale_model"),
    Column("State", lambda r: fmt.format_upper(r.get("state"))),
    *_scale_columns(),
    field_column("Region", "region", default="No Region"),
    Column("Settings", fmt.format_settings),
    Column("Peripherals", lambda r: fmt.format_on_off(r.get("peripherals_turned_off"))),
]

ALERT_COLUMNS = [
    field_column("Scale ID", "company_id"),
    field_column("Scale Model", "scale_model"),
    Column("State", lambda r: fmt.format_upper(r.get("state"))),
    field_column("Interrupt Type", "interrupt_types"),
    *_scale_columns(),
    field_column("Region", "region"),
    Column("Severity", lambda r: fmt.format_upper(r.get("alert_severity"))),
    Column("Status", lambda r: fmt.format_resolved(r.get("resolved"))),
    Column("Created At", lambda r: fmt.format_datetime(r.get("createdAt") or r.get("rtc_timestamp"))),
]

DEVICE_COLUMNS = [
    field_column("Company ID", "company_id"),
    Column("Status", lambda r: fmt.format_active(r.get("status"))),
    field_column("Factory Name", "factory_name"),
    field_column("Location", "factory_location"),
    field_column("Region", "region"),
    field_column("Serial Number", "serial_number"),
    field_column("Mobile Number", "phone_number", default="Not Assigned"),
    field_column("SIM Card Number", "device_sim_card_no"),
]

USER_COLUMNS = [
    field_column("Name", "name"),
    field_column("Email", "email"),
    field_column("Designation", "designation"),
    field_column("Phone Number", "phone_number"),
    field_column("Role", "role"),
    field_column("Level", "level"),
    field_column("Status", "status"),
    Column("Factory", lambda r: fmt.nested_value(r, "factory", "name")),
    Column("Location", lambda r: fmt.nested_value(r, "factory", "location")),
]

FACTORY_COLUMNS = [
    Column("Factory ID", lambda r: r.get("id") or r.get("_id")),
    field_column("Factory Name", "name"),
    field_column("Location", "location"),
    field_column("Region", "region", default="Not Assigned"),
    field_column("Status", "status"),
    Column("Created At", lambda r: fmt.format_datetime(r.get("createdAt"))),
    Column("Last Updated", lambda r: fmt.format_datetime(r.get("updatedAt"))),
]

ACTIVITY_LOG_COLUMNS = [
    Column("Timestamp", lambda r: fmt.format_datetime(r.get("timestamp"))),
    field_column("User", "user"),
    field_column("Action", "action"),
    field_column("Details", "details"),
]

COLUMN_SPECS: Dict[str, List[Column]] = {
    "device_data": DEVICE_DATA_COLUMNS,
    "alerts": ALERT_COLUMNS,
    "devices": DEVICE_COLUMNS,
    "users": USER_COLUMNS,
    "factories": FACTORY_COLUMNS,
    "activity_logs": ACTIVITY_LOG_COLUMNS,
}


def get_columns(endpoint_name: str) -> List[Column]:
    """
    Get the export columns for an endpoint.

    Raises:
        ConfigurationError: If no column spec exists for the endpoint.
    """
    try:
        return list(COLUMN_SPECS[endpoint_name])
    except KeyError:
        raise ConfigurationError(
            f"No export columns for '{endpoint_name}'. Available: {', '.join(sorted(COLUMN_SPECS))}"
        )
