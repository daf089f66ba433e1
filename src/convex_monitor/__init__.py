"""convex_monitor - Convex Finance metrics and polling change detection."""

__version__ = "0.1.0"
