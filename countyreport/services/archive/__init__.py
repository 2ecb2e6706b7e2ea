"""healthdata.gov archive integration."""

from .client import ArchiveClient
from .http import ReportHttpClient
from .models import Attachment
from .selector import build_download_url, select_latest

__all__ = [
    "ArchiveClient",
    "ReportHttpClient",
    "Attachment",
    "build_download_url",
    "select_latest",
]
