"""Collects coding-agent usage from ccusage-family tools and syncs it to the dashboard."""

__version__ = "0.3.0"
