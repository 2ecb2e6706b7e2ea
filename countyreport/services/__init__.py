"""Report resolution, extraction and caching services."""
