"""stockpilot: workspace-scoped automation rule engine for inventory operations."""

__version__ = "0.1.0"
