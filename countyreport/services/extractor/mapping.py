"""Field mappings and FIPS selectors accepted from callers."""

from __future__ import annotations

import re
from typing import Iterable, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from countyreport.core.errors import InvalidRequest

COLUMN_ADDRESS_PATTERN = re.compile(r"^[A-Z]{1,3}$")
FIELD_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
FIPS_PARAM = "fips"
MISSING_FIPS_MESSAGE = 'Must specificy query param "fips" with comma delimited list of codes'

DEFAULT_FIELD_COLUMNS: dict[str, str] = {
    "countyName": "A",
    "fipsCode": "B",
    "areaOfConcernCategory": "AG",
    "communityTransmissionLevelLast7": "AI",
    "communityTransmissionLevelPrev7": "AJ",
    "casesPer100KLast7Days": "Q",
    "casesLast7Days": "P",
    "positivityRateLast7Days": "AK",
    "fullyVaccinatedPercentPopulation": "CB",
    "fullVaccinated12to17PercentPopulation": "CO",
}

# Denver metro counties plus Boulder and Weld.
DENVER_AREA_FIPS: frozenset[int] = frozenset(
    {8001, 8005, 8013, 8014, 8019, 8031, 8035, 8039, 8047, 8059, 8093, 8123}
)


class FieldMapping(BaseModel):
    """Ordered ``output field -> column letter`` projection for extraction."""

    model_config = ConfigDict(frozen=True)

    columns: dict[str, str]

    @field_validator("columns")
    @classmethod
    def _validate_columns(cls, value: dict[str, str]) -> dict[str, str]:
        if not value:
            raise ValueError("field mapping must not be empty")
        normalized: dict[str, str] = {}
        for name, column in value.items():
            field_name = str(name)
            if not field_name.strip():
                raise ValueError("field names must not be blank")
            if not FIELD_NAME_PATTERN.fullmatch(field_name):
                raise ValueError(
                    f"invalid field name {field_name!r}; use letters, digits and underscores"
                )
            address = str(column).strip().upper()
            if not COLUMN_ADDRESS_PATTERN.match(address):
                raise ValueError(f"invalid column address {column!r} for field {field_name!r}")
            normalized[field_name] = address
        return normalized

    @classmethod
    def build(cls, columns: Mapping[str, str]) -> "FieldMapping":
        """Validate ``columns``; bad input surfaces as ``InvalidRequest``."""

        try:
            return cls(columns=dict(columns))
        except ValidationError as exc:
            messages = "; ".join(error["msg"] for error in exc.errors())
            raise InvalidRequest(f"Invalid field mapping: {messages}") from exc

    @classmethod
    def default(cls) -> "FieldMapping":
        return cls(columns=dict(DEFAULT_FIELD_COLUMNS))

    @classmethod
    def from_query(
        cls,
        params: Iterable[tuple[str, str]],
        *,
        exclude: Iterable[str] = (FIPS_PARAM,),
    ) -> "FieldMapping":
        """Read ``field=column`` pairs from query parameters.

        Any parameter not listed in ``exclude`` is a field. Without any, the
        default mapping applies.
        """

        skipped = set(exclude)
        columns = {name: value for name, value in params if name not in skipped}
        if not columns:
            return cls.default()
        return cls.build(columns)

    @classmethod
    def parse_pairs(cls, pairs: Iterable[str]) -> "FieldMapping":
        """Build a mapping from ``field=COLUMN`` strings (CLI form)."""

        columns: dict[str, str] = {}
        for pair in pairs:
            name, sep, column = pair.partition("=")
            if not sep:
                raise InvalidRequest(f"Expected field=COLUMN, got {pair!r}")
            if name in columns:
                raise InvalidRequest(f"Field {name!r} is mapped more than once")
            columns[name] = column
        if not columns:
            return cls.default()
        return cls.build(columns)

    def items(self) -> list[tuple[str, str]]:
        return list(self.columns.items())

    def cache_token(self) -> tuple[tuple[str, str], ...]:
        """Order-independent representation used in cache keys."""

        return tuple(sorted(self.columns.items()))


def parse_fips(raw: str | None) -> frozenset[int]:
    """Parse a comma-separated list of FIPS codes."""

    if raw is None or not raw.strip():
        raise InvalidRequest(MISSING_FIPS_MESSAGE)
    codes: set[int] = set()
    for part in raw.split(","):
        token = part.strip()
        if not token:
            continue
        try:
            codes.add(int(token))
        except ValueError as exc:
            raise InvalidRequest(f"Invalid FIPS code: {token!r}") from exc
    if not codes:
        raise InvalidRequest(MISSING_FIPS_MESSAGE)
    return frozenset(codes)


def selector_token(selectors: Iterable[int]) -> tuple[int, ...]:
    """Order-independent representation of a selector set for cache keys."""

    return tuple(sorted({int(code) for code in selectors}))


__all__ = [
    "FieldMapping",
    "DEFAULT_FIELD_COLUMNS",
    "DENVER_AREA_FIPS",
    "FIPS_PARAM",
    "MISSING_FIPS_MESSAGE",
    "COLUMN_ADDRESS_PATTERN",
    "FIELD_NAME_PATTERN",
    "parse_fips",
    "selector_token",
]
