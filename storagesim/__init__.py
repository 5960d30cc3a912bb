"""Simulated disk manager and buffer pool for a database storage engine."""

__version__ = "0.1.0"
__all__ = ["common", "block", "page", "sector_map", "disk_manager", "buffer_manager"]