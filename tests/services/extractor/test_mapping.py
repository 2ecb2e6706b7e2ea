from __future__ import annotations

import pytest

from countyreport.core.errors import InvalidRequest
from countyreport.services.extractor.mapping import (
    DEFAULT_FIELD_COLUMNS,
    DENVER_AREA_FIPS,
    MISSING_FIPS_MESSAGE,
    FieldMapping,
    parse_fips,
    selector_token,
)


def test_parse_fips_reads_comma_separated_codes() -> None:
    assert parse_fips("8031, 8005,,08013") == frozenset({8031, 8005, 8013})


@pytest.mark.parametrize("raw", [None, "", "   ", ",,"])
def test_parse_fips_requires_codes(raw) -> None:
    with pytest.raises(InvalidRequest) as excinfo:
        parse_fips(raw)
    assert str(excinfo.value) == MISSING_FIPS_MESSAGE


def test_parse_fips_rejects_non_integers() -> None:
    with pytest.raises(InvalidRequest):
        parse_fips("8031,denver")


def test_query_without_fields_uses_default_mapping() -> None:
    mapping = FieldMapping.from_query([("fips", "8031")])

    assert mapping.columns == DEFAULT_FIELD_COLUMNS


def test_query_fields_override_default_mapping() -> None:
    mapping = FieldMapping.from_query([("fips", "8031"), ("name", "a"), ("cases", "P")])

    assert mapping.items() == [("name", "A"), ("cases", "P")]


@pytest.mark.parametrize("column", ["", "A1", "ABCD", "$A", "B-"])
def test_invalid_column_addresses_are_rejected(column) -> None:
    with pytest.raises(InvalidRequest):
        FieldMapping.from_query([("fips", "1"), ("field", column)])


@pytest.mark.parametrize("name", ["x=A&y", "1st", "county name", "naïve", "a-b", "name\n"])
def test_field_names_must_be_identifiers(name) -> None:
    with pytest.raises(InvalidRequest) as excinfo:
        FieldMapping.build({name: "A"})
    assert "invalid field name" in str(excinfo.value)


def test_padded_field_names_are_rejected_not_merged() -> None:
    with pytest.raises(InvalidRequest):
        FieldMapping.build({" a": "A", "a": "B"})
    with pytest.raises(InvalidRequest):
        FieldMapping.build({"   ": "A"})
    with pytest.raises(InvalidRequest):
        FieldMapping.parse_pairs([" a=A", "a=B"])


def test_parse_pairs_rejects_repeated_fields() -> None:
    with pytest.raises(InvalidRequest):
        FieldMapping.parse_pairs(["name=A", "name=B"])


def test_parse_pairs_requires_equals_sign() -> None:
    assert FieldMapping.parse_pairs(["name=A"]).columns == {"name": "A"}
    assert FieldMapping.parse_pairs([]).columns == DEFAULT_FIELD_COLUMNS
    with pytest.raises(InvalidRequest):
        FieldMapping.parse_pairs(["name"])


def test_cache_tokens_ignore_ordering() -> None:
    first = FieldMapping.build({"b": "B", "a": "A"})
    second = FieldMapping.build({"a": "A", "b": "B"})

    assert first.cache_token() == second.cache_token() == (("a", "A"), ("b", "B"))
    assert selector_token([8031, 8005, 8031]) == selector_token({8005, 8031}) == (8005, 8031)


def test_denver_area_has_twelve_counties() -> None:
    assert len(DENVER_AREA_FIPS) == 12
    assert {8031, 8005} <= DENVER_AREA_FIPS
