"""Workbook parsing and field extraction."""

from .extract import ExtractionResult, extract
from .mapping import DENVER_AREA_FIPS, FieldMapping, parse_fips
from .workbook import ReportWorkbook

__all__ = [
    "ExtractionResult",
    "extract",
    "DENVER_AREA_FIPS",
    "FieldMapping",
    "parse_fips",
    "ReportWorkbook",
]
