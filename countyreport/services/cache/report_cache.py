"""Workbook and extraction-result caches over a shared expiring store."""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Callable, Iterable

from countyreport.core.logger import get_logger
from countyreport.services.extractor.extract import ExtractionResult, read_report_date
from countyreport.services.extractor.mapping import FieldMapping, selector_token
from countyreport.services.extractor.workbook import ReportWorkbook

from .store import ExpiringLRUCache, NamespacedCache

LOGGER = get_logger()

WORKBOOK_PREFIX = "workbook"
RESULT_PREFIX = "result"
LATEST_WORKBOOK_KEY = "latest"


def _date_token(report_date: Any) -> str:
    if isinstance(report_date, (datetime, date)):
        return report_date.isoformat()
    return str(report_date)


def result_cache_key(report_date: Any, selectors: Iterable[int], mapping: FieldMapping) -> str:
    """Derive the order-independent cache key for an extraction request."""

    parts = [_date_token(report_date), selector_token(selectors), mapping.cache_token()]
    return json.dumps(parts, separators=(",", ":"), ensure_ascii=False)


class WorkbookCache:
    """Single-slot cache for the latest downloaded-and-parsed report."""

    def __init__(self, store: ExpiringLRUCache, loader: Callable[[], ReportWorkbook]) -> None:
        self._cache: NamespacedCache[ReportWorkbook] = NamespacedCache(store, WORKBOOK_PREFIX)
        self._loader = loader

    def get_latest_workbook(self) -> ReportWorkbook:
        """Return the cached workbook, loading it once per time-to-live window."""

        return self._cache.get_or_create(LATEST_WORKBOOK_KEY, self._loader)

    def invalidate(self) -> None:
        self._cache.invalidate(LATEST_WORKBOOK_KEY)


class ResultCache:
    """Cache of extraction results keyed by report date, selectors and mapping."""

    def __init__(self, store: ExpiringLRUCache) -> None:
        self._cache: NamespacedCache[ExtractionResult] = NamespacedCache(store, RESULT_PREFIX)

    def get_or_compute(
        self,
        workbook: ReportWorkbook,
        selectors: Iterable[int],
        mapping: FieldMapping,
        compute: Callable[[], ExtractionResult],
    ) -> ExtractionResult:
        key = result_cache_key(read_report_date(workbook), selectors, mapping)
        return self._cache.get_or_create(key, compute)


__all__ = [
    "WorkbookCache",
    "ResultCache",
    "result_cache_key",
    "LATEST_WORKBOOK_KEY",
]
