"""End-to-end tests for the report service with a fake upstream."""

from __future__ import annotations

import pytest

from conftest import REPORT_DATE, FakeSession, MockResponse, archive_index, build_report_bytes
from countyreport.core.errors import LayoutMismatch, UnreadableWorkbook, UpstreamUnavailable
from countyreport.services.archive.http import ReportHttpClient
from countyreport.services.extractor.mapping import FieldMapping
from countyreport.services.report_service import ReportService


def _build_service(config, responses, clock=None) -> tuple[ReportService, FakeSession]:
    session = FakeSession(responses)
    service = ReportService(config, http_client=ReportHttpClient(config, session=session), clock=clock)
    return service, session


def test_county_data_downloads_latest_report(config, denver_rows) -> None:
    service, session = _build_service(
        config,
        [
            MockResponse(json_data=archive_index("report-3.xlsx", "report-5.xlsx")),
            MockResponse(body=build_report_bytes(denver_rows)),
        ],
    )

    result = service.county_data({8005, 8031}, FieldMapping.build({"name": "A"}))

    assert result.report_date == REPORT_DATE
    assert [record["name"] for record in result.records] == ["Denver County, CO", "Arapahoe County, CO"]
    assert session.calls == [
        "https://archive.example/index.json",
        "https://files.example/A2?download=true&filename=report-5.xlsx",
    ]
    assert service.get_latest_workbook().source_url == session.calls[-1]


def test_repeat_requests_skip_network_and_extraction(config, denver_rows, monkeypatch) -> None:
    service, session = _build_service(
        config,
        [
            MockResponse(json_data=archive_index("report-1.xlsx")),
            MockResponse(body=build_report_bytes(denver_rows)),
        ],
    )
    extractions: list[int] = []
    from countyreport.services import report_service as module

    original = module.extract

    def counting_extract(*args, **kwargs):
        extractions.append(1)
        return original(*args, **kwargs)

    monkeypatch.setattr(module, "extract", counting_extract)

    first = service.denver_transmission_categories()
    second = service.county_data([8123, 8093, 8059, 8047, 8039, 8035, 8031, 8019, 8014, 8013, 8005, 8001])

    assert second is first
    assert len(extractions) == 1
    assert len(session.calls) == 2
    assert [record["fipsCode"] for record in first.records] == [8031, 8005]


def test_workbook_is_refetched_after_ttl(config, denver_rows, fake_clock) -> None:
    report = build_report_bytes(denver_rows)
    service, session = _build_service(
        config,
        [
            MockResponse(json_data=archive_index("report-1.xlsx")),
            MockResponse(body=report),
            MockResponse(json_data=archive_index("report-1.xlsx", "report-2.xlsx")),
            MockResponse(body=report),
        ],
        clock=fake_clock,
    )

    service.county_data({8031})
    fake_clock.advance(config.cache_ttl_seconds)
    service.county_data({8031})

    assert session.calls[-1].endswith("filename=report-2.xlsx")
    assert len(session.calls) == 4


def test_upstream_failure_is_not_cached(config, denver_rows, no_sleep) -> None:
    service, session = _build_service(
        config,
        [
            MockResponse(status_code=500),
            MockResponse(status_code=500),
            MockResponse(status_code=500),
            MockResponse(json_data=archive_index("report-1.xlsx")),
            MockResponse(body=build_report_bytes(denver_rows)),
        ],
    )

    with pytest.raises(UpstreamUnavailable):
        service.county_data({8031})
    assert service.county_data({8031}).records[0]["fipsCode"] == 8031
    assert service.cache_stats()["size"] == 2


def test_corrupt_download_raises_unreadable_workbook(config) -> None:
    service, _ = _build_service(
        config,
        [
            MockResponse(json_data=archive_index("report-1.xlsx")),
            MockResponse(body=b"<html>not a spreadsheet</html>"),
        ],
    )

    with pytest.raises(UnreadableWorkbook) as excinfo:
        service.get_latest_workbook()
    assert excinfo.value.url == "https://files.example/A1?download=true&filename=report-1.xlsx"


def test_layout_mismatch_surfaces_from_extraction(config, denver_rows) -> None:
    service, _ = _build_service(
        config,
        [
            MockResponse(json_data=archive_index("report-1.xlsx")),
            MockResponse(body=build_report_bytes(denver_rows, include_notes=False)),
        ],
    )

    with pytest.raises(LayoutMismatch):
        service.county_data({8031})


def test_report_links_list_every_spreadsheet(config) -> None:
    service, _ = _build_service(config, [MockResponse(json_data=archive_index("a-1.xlsx", "b.csv", "c-2.xlsx"))])

    assert service.report_links() == [
        "https://files.example/A1?download=true&filename=a-1.xlsx",
        "https://files.example/A3?download=true&filename=c-2.xlsx",
    ]
