"""Public API for resolving the latest report and extracting county data."""

from __future__ import annotations

import logging
from typing import Iterable

from countyreport.config import ReportServiceConfig
from countyreport.core.logger import get_logger

from .archive.client import ArchiveClient
from .archive.http import ReportHttpClient
from .cache.report_cache import ResultCache, WorkbookCache
from .cache.store import Clock, ExpiringLRUCache
from .extractor.extract import ExtractionResult, extract
from .extractor.mapping import DENVER_AREA_FIPS, FieldMapping
from .extractor.workbook import ReportWorkbook

LOGGER = get_logger()


class ReportService:
    """Resolve, download, parse and project the latest Community Profile Report."""

    def __init__(
        self,
        config: ReportServiceConfig,
        *,
        archive_client: ArchiveClient | None = None,
        http_client: ReportHttpClient | None = None,
        store: ExpiringLRUCache | None = None,
        clock: Clock | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._logger = logger or LOGGER
        if archive_client is None:
            archive_client = ArchiveClient(config, http_client=http_client, logger=self._logger)
        self._archive = archive_client
        self._http = http_client or archive_client.http
        self._store = store or ExpiringLRUCache(
            max_entries=config.cache_max_entries,
            ttl_seconds=config.cache_ttl_seconds,
            clock=clock,
        )
        self._workbooks = WorkbookCache(self._store, self._load_latest_workbook)
        self._results = ResultCache(self._store)

    @classmethod
    def from_config(cls, config: ReportServiceConfig) -> "ReportService":
        return cls(config)

    @property
    def config(self) -> ReportServiceConfig:
        return self._config

    def latest_report_url(self) -> str:
        return self._archive.latest_report_url()

    def report_links(self) -> list[str]:
        return self._archive.fetch_attachment_urls()

    def get_latest_workbook(self) -> ReportWorkbook:
        return self._workbooks.get_latest_workbook()

    def county_data(
        self,
        selectors: Iterable[int],
        mapping: FieldMapping | None = None,
    ) -> ExtractionResult:
        """Extract ``mapping`` fields for the counties in ``selectors``."""

        codes = frozenset(selectors)
        fields = mapping or FieldMapping.default()
        workbook = self.get_latest_workbook()
        return self._results.get_or_compute(
            workbook,
            codes,
            fields,
            lambda: extract(workbook, codes, fields, selector_column=self._config.selector_column),
        )

    def denver_transmission_categories(self) -> ExtractionResult:
        return self.county_data(DENVER_AREA_FIPS)

    def cache_stats(self) -> dict[str, int]:
        return self._store.stats()

    def close(self) -> None:
        self._http.close()

    # Internal helpers -------------------------------------------------

    def _load_latest_workbook(self) -> ReportWorkbook:
        url = self._archive.latest_report_url()
        data = self._http.get_bytes(url)
        return ReportWorkbook.from_bytes(data, source_url=url)


__all__ = ["ReportService"]
