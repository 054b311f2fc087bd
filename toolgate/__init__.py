"""toolgate: tool enablement and provider connection authorization."""

__version__ = "0.1.0"
