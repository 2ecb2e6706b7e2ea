"""Time-bounded caches for reports and extraction results."""

from .report_cache import ResultCache, WorkbookCache, result_cache_key
from .store import ExpiringLRUCache, NamespacedCache

__all__ = [
    "ResultCache",
    "WorkbookCache",
    "result_cache_key",
    "ExpiringLRUCache",
    "NamespacedCache",
]
