"""Project per-county fields out of a Community Profile Report workbook."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from countyreport.core.errors import LayoutMismatch
from countyreport.core.logger import get_logger

from .mapping import FieldMapping
from .workbook import ReportWorkbook

LOGGER = get_logger()

NOTES_SHEET = "User Notes"
REPORT_DATE_CELL = "B4"
COUNTIES_SHEET = "Counties"
DEFAULT_SELECTOR_COLUMN = "B"


@dataclass(frozen=True)
class ExtractionResult:
    """Report publication date and the matched county records."""

    report_date: Any
    records: tuple[dict[str, Any], ...]

    def to_payload(self) -> dict[str, Any]:
        return {"reportDate": self.report_date, "countyData": [dict(record) for record in self.records]}


def _as_code(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        return int(text) if text.isdigit() else None
    return None


def read_report_date(workbook: ReportWorkbook) -> Any:
    """Return the publication date stored in ``User Notes!B4``."""

    return workbook.sheet(NOTES_SHEET).cell(REPORT_DATE_CELL)


def matching_rows(
    workbook: ReportWorkbook,
    selectors: Iterable[int],
    *,
    selector_column: str = DEFAULT_SELECTOR_COLUMN,
) -> list[int]:
    """Return, in ascending order, the Counties rows whose code is selected."""

    wanted = frozenset(selectors)
    counties = workbook.sheet(COUNTIES_SHEET)
    return [row for row, value in counties.iter_column(selector_column) if _as_code(value) in wanted]


def extract(
    workbook: ReportWorkbook,
    selectors: Iterable[int],
    mapping: FieldMapping,
    *,
    selector_column: str = DEFAULT_SELECTOR_COLUMN,
) -> ExtractionResult:
    """Build one record per selected county row.

    Records follow the physical row order of the sheet regardless of the
    order ``selectors`` were given in.

    Raises:
        LayoutMismatch: When a required sheet, cell or column is missing.
    """

    report_date = read_report_date(workbook)
    counties = workbook.sheet(COUNTIES_SHEET)
    rows = matching_rows(workbook, selectors, selector_column=selector_column)
    pairs = mapping.items()
    records: list[dict[str, Any]] = []
    for row in rows:
        record: dict[str, Any] = {}
        for name, column in pairs:
            try:
                record[name] = counties.value(row, column)
            except LayoutMismatch:
                LOGGER.error(
                    "countyreport.extract unresolvable_column field=%s column=%s row=%d",
                    name,
                    column,
                    row,
                )
                raise
        records.append(record)
    LOGGER.info(
        "countyreport.extract report_date=%s matched=%d fields=%d",
        report_date,
        len(records),
        len(pairs),
    )
    return ExtractionResult(report_date=report_date, records=tuple(records))


__all__ = [
    "ExtractionResult",
    "extract",
    "matching_rows",
    "read_report_date",
    "NOTES_SHEET",
    "REPORT_DATE_CELL",
    "COUNTIES_SHEET",
    "DEFAULT_SELECTOR_COLUMN",
]
