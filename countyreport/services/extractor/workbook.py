"""Immutable in-memory snapshot of a report workbook."""

# Module responsibilities:
# - Parse downloaded .xlsx bytes with openpyxl into plain row tuples.
# - Expose sheets, rows, lettered columns and A1-style cells for read-only access.

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Any, Iterator, Mapping

from openpyxl import load_workbook
from openpyxl.utils.cell import column_index_from_string, coordinate_from_string
from openpyxl.utils.exceptions import CellCoordinatesException

from countyreport.core.errors import LayoutMismatch, UnreadableWorkbook
from countyreport.core.logger import get_logger

LOGGER = get_logger()

Row = tuple[Any, ...]


def column_index(letter: str) -> int:
    """Translate a column letter (``A``, ``AG``) into a 1-based index."""

    try:
        return column_index_from_string(letter.upper())
    except ValueError as exc:
        raise LayoutMismatch(f"Invalid column address: {letter}") from exc


def _unreadable(exc: Exception, data: bytes, source_url: str) -> UnreadableWorkbook:
    LOGGER.error(
        "countyreport.workbook unreadable url=%s bytes=%d error=%s",
        source_url,
        len(data),
        type(exc).__name__,
    )
    return UnreadableWorkbook(
        f"Downloaded report is not a readable workbook: {exc}",
        url=source_url,
    )


@dataclass(frozen=True)
class SheetSnapshot:
    """Values of a single worksheet, rows padded to the sheet width."""

    title: str
    rows: tuple[Row, ...]
    width: int

    @classmethod
    def from_rows(cls, title: str, raw_rows: list[Row]) -> "SheetSnapshot":
        width = max((len(row) for row in raw_rows), default=0)
        rows = tuple(tuple(row) + (None,) * (width - len(row)) for row in raw_rows)
        return cls(title=title, rows=rows, width=width)

    @property
    def max_row(self) -> int:
        return len(self.rows)

    def value(self, row: int, column: str) -> Any:
        """Return the value at 1-based ``row`` and lettered ``column``."""

        col = column_index(column)
        if col > self.width:
            raise LayoutMismatch(
                f"Column {column} is outside sheet '{self.title}' (width {self.width})",
                payload={"sheet": self.title, "column": column},
            )
        if row < 1 or row > self.max_row:
            raise LayoutMismatch(
                f"Row {row} is outside sheet '{self.title}' ({self.max_row} rows)",
                payload={"sheet": self.title, "row": row},
            )
        return self.rows[row - 1][col - 1]

    def cell(self, address: str) -> Any:
        """Return the value at an A1-style ``address``."""

        try:
            column, row = coordinate_from_string(address.upper())
        except (CellCoordinatesException, ValueError) as exc:
            raise LayoutMismatch(f"Invalid cell address: {address}") from exc
        return self.value(row, column)

    def iter_column(self, column: str) -> Iterator[tuple[int, Any]]:
        """Yield ``(row_number, value)`` pairs top-to-bottom for ``column``."""

        col = column_index(column)
        if col > self.width:
            raise LayoutMismatch(
                f"Column {column} is outside sheet '{self.title}' (width {self.width})",
                payload={"sheet": self.title, "column": column},
            )
        for number, row in enumerate(self.rows, start=1):
            yield number, row[col - 1]


class ReportWorkbook:
    """Read-only view over every sheet of a downloaded report."""

    def __init__(self, sheets: Mapping[str, SheetSnapshot], *, source_url: str | None = None) -> None:
        self._sheets = dict(sheets)
        self._source_url = source_url

    @classmethod
    def from_bytes(cls, data: bytes, *, source_url: str) -> "ReportWorkbook":
        """Parse ``data`` as an .xlsx workbook.

        Args:
            data: Raw spreadsheet bytes.
            source_url: Where the bytes came from, kept for diagnostics.

        Returns:
            Snapshot of every worksheet's cell values.

        Raises:
            UnreadableWorkbook: When the bytes are not a readable workbook.
        """

        try:
            workbook = load_workbook(io.BytesIO(data), data_only=True)
        except Exception as exc:  # noqa: BLE001
            raise _unreadable(exc, data, source_url) from exc

        try:
            sheets = {
                worksheet.title: SheetSnapshot.from_rows(
                    worksheet.title,
                    list(worksheet.iter_rows(values_only=True)),
                )
                for worksheet in workbook.worksheets
            }
        except Exception as exc:  # noqa: BLE001
            raise _unreadable(exc, data, source_url) from exc
        finally:
            workbook.close()

        LOGGER.info(
            "countyreport.workbook loaded url=%s sheets=%s",
            source_url,
            ",".join(sheets),
        )
        return cls(sheets, source_url=source_url)

    @property
    def source_url(self) -> str | None:
        return self._source_url

    @property
    def sheet_names(self) -> list[str]:
        return list(self._sheets)

    def has_sheet(self, name: str) -> bool:
        return name in self._sheets

    def sheet(self, name: str) -> SheetSnapshot:
        try:
            return self._sheets[name]
        except KeyError as exc:
            raise LayoutMismatch(
                f"Workbook has no sheet named '{name}'",
                payload={"sheet": name, "available": self.sheet_names},
            ) from exc


__all__ = ["ReportWorkbook", "SheetSnapshot", "column_index"]
