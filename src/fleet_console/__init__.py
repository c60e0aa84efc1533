"""Fleet Console: filtered retrieval and bulk CSV export for the fleet-monitoring backend."""

__version__ = "1.0.0"
