"""Resolve, extract and serve Community Profile Report county data."""

__version__ = "0.1.0"
