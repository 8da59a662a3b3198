"""Helpers for inspecting and changing SQL Server schema objects."""

__version__ = "0.1.0"
