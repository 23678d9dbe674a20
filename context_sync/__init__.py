"""Semantic context synchronization for organization analytics."""

__version__ = "0.1.0"
