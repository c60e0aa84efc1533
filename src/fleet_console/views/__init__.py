"""Live view state for filterable, paginated tables."""

from .listing import ListingView, ViewStatus

__all__ = ["ListingView", "ViewStatus"]
