"""HTTP surface for county report data."""

from .app import create_app

__all__ = ["create_app"]
