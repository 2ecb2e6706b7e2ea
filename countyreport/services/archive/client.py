"""Client for the healthdata.gov Community Profile Report archive."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from countyreport.config import ReportServiceConfig
from countyreport.core.errors import ArchiveEmpty, MalformedMetadata
from countyreport.core.logger import get_logger

from .http import ReportHttpClient
from .models import Attachment
from .selector import build_download_url, select_latest

LOGGER = get_logger()

METADATA_FIELD = "metadata_published"


class ArchiveClient:
    """Read attachment metadata from the newest archive entry."""

    def __init__(
        self,
        config: ReportServiceConfig,
        *,
        http_client: ReportHttpClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._logger = logger or LOGGER
        self._http = http_client or ReportHttpClient(config, logger=self._logger)

    @property
    def http(self) -> ReportHttpClient:
        return self._http

    def fetch_latest_attachments(self) -> list[Attachment]:
        """Return the spreadsheet attachments of the newest archive entry.

        The archive index is append-only and time ordered, so the last entry
        is the newest one. The returned list may be empty.
        """

        index = self._http.get_json(self._config.archive_url)
        if not isinstance(index, list):
            raise MalformedMetadata("Archive index is not a JSON array")
        if not index:
            raise ArchiveEmpty("Archive index has no entries")
        entry = index[-1]
        attachments = [item for item in self._parse_attachments(entry) if item.is_spreadsheet]
        self._logger.info(
            "countyreport.archive latest_entry spreadsheets=%d entries=%d",
            len(attachments),
            len(index),
        )
        return attachments

    def fetch_attachment_urls(self) -> list[str]:
        """Return download URLs for every spreadsheet of the newest entry."""

        template = self._config.download_url_template
        return [build_download_url(item, template) for item in self.fetch_latest_attachments()]

    def latest_report_url(self) -> str:
        """Return the download URL of the latest report."""

        return select_latest(self.fetch_latest_attachments(), template=self._config.download_url_template)

    def close(self) -> None:
        self._http.close()

    # Internal helpers -------------------------------------------------

    def _parse_attachments(self, entry: Any) -> list[Attachment]:
        if not isinstance(entry, Mapping):
            raise MalformedMetadata("Archive entry is not an object")
        raw = entry.get(METADATA_FIELD)
        if raw is None:
            raise MalformedMetadata(f"Archive entry is missing '{METADATA_FIELD}'")
        if isinstance(raw, str):
            try:
                metadata = json.loads(raw)
            except ValueError as exc:
                raise MalformedMetadata(f"'{METADATA_FIELD}' is not valid JSON") from exc
        else:
            metadata = raw
        if not isinstance(metadata, Mapping):
            raise MalformedMetadata(f"'{METADATA_FIELD}' is not a JSON object")
        items = metadata.get("attachments")
        if not isinstance(items, list):
            raise MalformedMetadata("Published metadata has no attachments list")

        attachments: list[Attachment] = []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            asset_id = item.get("assetId")
            filename = item.get("filename")
            if not asset_id or not filename:
                self._logger.warning("countyreport.archive skipping attachment without assetId/filename")
                continue
            attachments.append(Attachment(asset_id=str(asset_id), filename=str(filename)))
        return attachments


__all__ = ["ArchiveClient", "METADATA_FIELD"]
