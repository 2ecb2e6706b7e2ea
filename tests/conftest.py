from __future__ import annotations

import faulthandler
import io
import json
import os
import sys
import tempfile
import threading
import traceback
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from types import FrameType
from typing import Any, Callable, Dict, Mapping, Sequence

import pytest
from openpyxl import Workbook

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("COUNTYREPORT_WORK_DIR", str(Path(tempfile.gettempdir()) / "countyreport-tests"))

faulthandler.enable()  # Ensure crashes emit tracebacks.

from countyreport.config import ReportServiceConfig, RetryConfig
from countyreport.services.extractor.workbook import column_index

REPORT_DATE = datetime(2021, 10, 14)
WIDEST_DEFAULT_COLUMN = "CO"


@dataclass
class MockResponse:
    status_code: int = 200
    json_data: Any = None
    body: bytes | None = None
    headers: dict[str, str] | None = None

    def __post_init__(self) -> None:
        if self.headers is None:
            self.headers = {}
        self.closed = False

    def json(self) -> Any:
        if self.json_data is None:
            raise ValueError("JSON body not set")
        return self.json_data

    @property
    def content(self) -> bytes:
        if self.body is not None:
            return self.body
        if self.json_data is not None:
            return json.dumps(self.json_data).encode("utf-8")
        return b""

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def iter_content(self, chunk_size: int = 8192):
        data = self.content
        for idx in range(0, len(data), chunk_size):
            yield data[idx : idx + chunk_size]

    def close(self) -> None:
        self.closed = True


class FakeSession:
    def __init__(self, responses: Sequence[MockResponse | Exception]) -> None:
        self._responses = list(responses)
        self._lock = threading.Lock()
        self.headers: dict[str, str] = {}
        self.calls: list[str] = []
        self.call_kwargs: list[dict[str, Any]] = []
        self.closed = False

    def get(self, url: str, **kwargs: Any) -> MockResponse:
        with self._lock:
            if not self._responses:
                raise AssertionError(f"No more responses queued for {url}")
            self.calls.append(url)
            self.call_kwargs.append(kwargs)
            response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        self.closed = True


def archive_index(*filenames: str, asset_prefix: str = "A") -> list[dict[str, str]]:
    attachments = [
        {"assetId": f"{asset_prefix}{idx}", "filename": name} for idx, name in enumerate(filenames, start=1)
    ]
    return [
        {"metadata_published": json.dumps({"attachments": []})},
        {"metadata_published": json.dumps({"attachments": attachments})},
    ]


def county_row(name: str, fips: Any, values: Mapping[str, Any] | None = None) -> list[Any]:
    row: list[Any] = [None] * column_index(WIDEST_DEFAULT_COLUMN)
    row[0] = name
    row[1] = fips
    # Empty trailing cells are not saved, so the widest mapped column gets a value.
    filled = {"CB": 0.61, WIDEST_DEFAULT_COLUMN: 0.48, **(values or {})}
    for column, value in filled.items():
        row[column_index(column) - 1] = value
    return row


def build_report_bytes(
    rows: Sequence[Sequence[Any]],
    *,
    report_date: Any = REPORT_DATE,
    include_notes: bool = True,
) -> bytes:
    workbook = Workbook()
    notes = workbook.active
    if include_notes:
        notes.title = "User Notes"
        notes["A1"] = "Community Profile Report"
        notes["A4"] = "Report date"
        notes["B4"] = report_date
        counties = workbook.create_sheet("Counties")
    else:
        notes.title = "Counties"
        counties = notes
    counties.append(["County", "FIPS code", "State"])
    for row in rows:
        counties.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _snapshot_thread_stacks() -> Dict[int, str]:
    frames: Dict[int, FrameType] = sys._current_frames()  # type: ignore[attr-defined]
    stacks: Dict[int, str] = {}
    for ident, frame in frames.items():
        stacks[ident] = "".join(traceback.format_stack(frame))
    return stacks


@pytest.fixture(autouse=True, scope="session")
def _thread_diagnostics() -> None:
    """Dump live non-daemon threads at the end of the test session."""

    yield

    stacks = _snapshot_thread_stacks()
    lingering: list[threading.Thread] = []
    for thread in threading.enumerate():
        if thread.daemon or thread is threading.current_thread():
            continue
        thread.join(timeout=2)
        if thread.is_alive():
            lingering.append(thread)

    if lingering:
        print("\n[pytest] lingering threads detected:", file=sys.stderr)
        for thread in lingering:
            stack = stacks.get(thread.ident, "<no stack>\n")
            print(
                f"- Thread {thread.name} (ident={thread.ident}) still alive after tests", file=sys.stderr
            )
            print(stack, file=sys.stderr)


@pytest.fixture
def config() -> ReportServiceConfig:
    return ReportServiceConfig(
        archive_url="https://archive.example/index.json",
        download_url_template="https://files.example/{asset_id}?download=true&filename={filename}",
        timeout_sec=1.0,
        retries=RetryConfig(max_attempts=3, backoff_ms=1, max_backoff_ms=1),
    )


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("countyreport.services.archive.http.time.sleep", lambda *_: None)


@pytest.fixture
def fake_clock() -> Callable[[], float]:
    class _Clock:
        def __init__(self) -> None:
            self.now = 0.0

        def __call__(self) -> float:
            return self.now

        def advance(self, seconds: float) -> None:
            self.now += seconds

    return _Clock()


@pytest.fixture
def denver_rows() -> list[list[Any]]:
    return [
        county_row("Denver County, CO", 8031, {"AG": "High", "AI": "high", "P": 1200, "Q": 165.2}),
        county_row("Somewhere County, XX", 9999, {"AG": "Low", "AI": "low", "P": 3, "Q": 1.1}),
        county_row("Arapahoe County, CO", 8005, {"AG": "Moderate", "AI": "substantial", "P": 900, "Q": 138.0}),
    ]
