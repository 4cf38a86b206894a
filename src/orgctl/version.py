"""Single source of truth for the orgctl version string."""

__version__: str = "0.3.0"
