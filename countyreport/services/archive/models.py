"""Domain models for the healthdata.gov report archive."""

from __future__ import annotations

from dataclasses import dataclass

SPREADSHEET_EXTENSION = ".xlsx"


@dataclass(frozen=True, slots=True)
class Attachment:
    """Downloadable file reference attached to an archive entry."""

    asset_id: str
    filename: str

    @property
    def is_spreadsheet(self) -> bool:
        return self.filename.lower().endswith(SPREADSHEET_EXTENSION)


__all__ = ["Attachment", "SPREADSHEET_EXTENSION"]
