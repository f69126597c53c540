from . import health, usage_stats, usage_sync

__all__ = ["health", "usage_stats", "usage_sync"]
