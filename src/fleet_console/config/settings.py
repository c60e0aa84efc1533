"""Application settings and configuration."""

from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


@dataclass
class APIConfig:
    """Backend API configuration settings."""

    base_url: str = field(
        default_factory=lambda: os.getenv("FLEET_API_BASE_URL", "http://localhost:8000/api/v1")
    )
    token: Optional[str] = field(default_factory=lambda: os.getenv("FLEET_API_TOKEN"))
    max_attempts: int = field(
        default_factory=lambda: int(os.getenv("FLEET_API_MAX_ATTEMPTS", "3"))
    )
    backoff_seconds: float = field(
        default_factory=lambda: float(os.getenv("FLEET_API_BACKOFF_SECONDS", "1.0"))
    )


@dataclass
class ExportConfig:
    """Bulk export configuration settings."""

    # Fetch granularity for exports, independent of the view page size
    page_size: int = field(
        default_factory=lambda: int(os.getenv("EXPORT_PAGE_SIZE", "100"))
    )
    request_delay_seconds: float = field(
        default_factory=lambda: float(os.getenv("EXPORT_REQUEST_DELAY_SECONDS", "0.1"))
    )
    exports_path: Path = field(
        default_factory=lambda: Path(
            os.getenv("EXPORTS_PATH", str(Path.cwd() / "exports"))
        )
    )


@dataclass
class ViewConfig:
    """Live view configuration settings."""

    entries_per_page: int = field(
        default_factory=lambda: int(os.getenv("VIEW_ENTRIES_PER_PAGE", "10"))
    )
    debounce_ms: int = field(
        default_factory=lambda: int(os.getenv("VIEW_DEBOUNCE_MS", "1000"))
    )


@dataclass
class AppConfig:
    """Application configuration settings."""

    name: str = field(default_factory=lambda: os.getenv("APP_NAME", "Fleet Console"))
    version: str = field(default_factory=lambda: os.getenv("APP_VERSION", "1.0.0"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


@dataclass
class Config:
    """Main configuration container."""

    api: APIConfig = field(default_factory=APIConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    view: ViewConfig = field(default_factory=ViewConfig)
    app: AppConfig = field(default_factory=AppConfig)


# Global config instance
config = Config()
