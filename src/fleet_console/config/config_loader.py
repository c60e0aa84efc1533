"""YAML Configuration Loader for Fleet Console.

Loads and caches the per-endpoint retrieval table from endpoints.yaml with
fallback to built-in defaults. Provides typed access through EndpointConfig.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from functools import lru_cache
import yaml

from .settings import config

# Get config directory
CONFIG_DIR = Path(__file__).parent

ENDPOINTS_FILE = "endpoints.yaml"

FIELD_KINDS = ("text", "identifier", "enum", "boolean", "date", "number")


class ConfigurationError(Exception):
    """Raised when configuration loading or access fails."""

    pass


def _load_yaml_file(filename: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of YAML file in config directory

    Returns:
        Parsed YAML content as dictionary

    Raises:
        ConfigurationError: If file cannot be loaded
    """
    filepath = CONFIG_DIR / filename
    if not filepath.exists():
        raise ConfigurationError(f"Configuration file not found: {filepath}")

    try:
        with open(filepath, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing {filename}: {e}")
    except IOError as e:
        raise ConfigurationError(f"Error reading {filename}: {e}")


@lru_cache(maxsize=1)
def load_endpoints() -> Dict[str, Any]:
    """Load endpoints.yaml configuration."""
    try:
        return _load_yaml_file(ENDPOINTS_FILE)
    except ConfigurationError:
        # Return minimal fallback defaults
        return {
            "defaults": {"search_param": "search", "page_size": 100},
            "endpoints": {
                "device_data": {
                    "path": "/data/",
                    "entity": "device_data",
                    "identifier_field": "company_id",
                    "include_count_in_filename": True,
                    "date_range": ["start_datetime", "end_datetime"],
                    "fields": {
                        "search_term": "text",
                        "company_id": "identifier",
                        "start_datetime": "date",
                        "end_datetime": "date",
                    },
                },
            },
        }


def clear_config_cache() -> None:
    """Clear all cached configuration data."""
    load_endpoints.cache_clear()


@dataclass(frozen=True)
class EndpointConfig:
    """Retrieval and export settings for one backend resource."""

    name: str
    path: str
    entity: str
    search_param: str = "search"
    page_size: int = 100
    debounce_ms: int = 1000
    identifier_field: Optional[str] = None
    date_range: Optional[Tuple[str, str]] = None
    fields: Dict[str, str] = field(default_factory=dict)
    choices: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    include_count_in_filename: bool = False

    @property
    def param_names(self) -> Dict[str, str]:
        """Mapping of filter field names to backend parameter names."""
        return {"search_term": self.search_param}

    @classmethod
    def from_dict(
        cls,
        name: str,
        data: Dict[str, Any],
        defaults: Optional[Dict[str, Any]] = None,
    ) -> "EndpointConfig":
        """Build an EndpointConfig from a YAML mapping merged over defaults."""
        merged = dict(defaults or {})
        merged.update(data or {})

        if "path" not in merged:
            raise ConfigurationError(f"Endpoint '{name}' has no path")

        fields = dict(merged.get("fields") or {})
        for field_name, kind in fields.items():
            if kind not in FIELD_KINDS:
                raise ConfigurationError(
                    f"Endpoint '{name}' field '{field_name}' has unknown kind '{kind}'"
                )

        date_range = merged.get("date_range")
        if date_range is not None:
            if len(date_range) != 2:
                raise ConfigurationError(
                    f"Endpoint '{name}' date_range must name a start and an end field"
                )
            date_range = (str(date_range[0]), str(date_range[1]))

        choices = {
            key: tuple(str(v) for v in values)
            for key, values in (merged.get("choices") or {}).items()
        }

        return cls(
            name=name,
            path=str(merged["path"]),
            entity=str(merged.get("entity", name)),
            search_param=str(merged.get("search_param", "search")),
            page_size=int(merged.get("page_size", config.export.page_size)),
            debounce_ms=int(merged.get("debounce_ms", config.view.debounce_ms)),
            identifier_field=merged.get("identifier_field"),
            date_range=date_range,
            fields=fields,
            choices=choices,
            include_count_in_filename=bool(merged.get("include_count_in_filename", False)),
        )


def get_endpoint_config(name: str) -> EndpointConfig:
    """
    Get the configuration for a named endpoint.

    Args:
        name: Endpoint key from endpoints.yaml (e.g. 'device_data')

    Returns:
        EndpointConfig for the endpoint

    Raises:
        ConfigurationError: If the endpoint is not configured
    """
    data = load_endpoints()
    endpoints = data.get("endpoints", {})
    if name not in endpoints:
        raise ConfigurationError(
            f"Unknown endpoint '{name}'. Available: {', '.join(sorted(endpoints))}"
        )
    return EndpointConfig.from_dict(name, endpoints[name], data.get("defaults"))


def list_endpoints() -> List[str]:
    """Get the names of all configured endpoints."""
    return sorted(load_endpoints().get("endpoints", {}).keys())
