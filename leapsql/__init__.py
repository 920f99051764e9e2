"""SQL template and SELECT syntax trees, and SQLite-backed pipeline state storage."""

__version__ = "0.1.0"