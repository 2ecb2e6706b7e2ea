"""Custom exceptions used across countyreport."""

from __future__ import annotations

from typing import Any


class ReportError(RuntimeError):
    """Base error raised while resolving or extracting a report."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}


class ConfigError(ReportError):
    """Configuration related error."""


class UpstreamUnavailable(ReportError):
    """Raised when the archive or file download request fails."""

    status_code = 502


class ArchiveEmpty(ReportError):
    """Raised when the archive index holds no entries."""

    status_code = 502


class MalformedMetadata(ReportError):
    """Raised when an archive entry does not carry usable attachment metadata."""

    status_code = 502


class NoAttachments(ReportError):
    """Raised when there is no spreadsheet attachment to choose from."""

    status_code = 502


class UnrecognizedFilename(ReportError):
    """Raised when an attachment filename lacks the numeric ordering token."""

    status_code = 502


class UnreadableWorkbook(ReportError):
    """Raised when downloaded bytes do not parse as a spreadsheet."""

    status_code = 502

    def __init__(self, message: str, *, url: str, payload: dict[str, Any] | None = None) -> None:
        super().__init__(message, payload={"url": url, **(payload or {})})
        self.url = url


class LayoutMismatch(ReportError):
    """Raised when an expected sheet, cell or column is absent."""

    status_code = 500


class InvalidRequest(ReportError):
    """Raised for caller errors such as a missing ``fips`` parameter."""

    status_code = 400


__all__ = [
    "ReportError",
    "ConfigError",
    "UpstreamUnavailable",
    "ArchiveEmpty",
    "MalformedMetadata",
    "NoAttachments",
    "UnrecognizedFilename",
    "UnreadableWorkbook",
    "LayoutMismatch",
    "InvalidRequest",
]
