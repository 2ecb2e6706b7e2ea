"""HTTP utilities for the healthdata.gov archive and file downloads."""

from __future__ import annotations

import logging
import random
import time
from typing import Iterable

import requests
from requests import Response
from requests.exceptions import ConnectionError, RequestException, Timeout

from countyreport.config import ReportServiceConfig
from countyreport.core.errors import MalformedMetadata, UpstreamUnavailable
from countyreport.core.logger import get_logger

LOGGER = get_logger()

USER_AGENT = "CountyReport/1.0"
RETRYABLE_STATUS = {429, 500, 502, 503, 504}
DOWNLOAD_CHUNK_SIZE = 1024 * 128


class ReportHttpClient:
    """Request helper wrapping retries and diagnostics for upstream GETs."""

    def __init__(
        self,
        config: ReportServiceConfig,
        *,
        session: requests.Session | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", USER_AGENT)
        self._logger = logger or LOGGER

    @property
    def session(self) -> requests.Session:
        return self._session

    def get_json(self, url: str) -> object:
        """GET ``url`` and decode the body as JSON."""

        response = self._request(url, headers={"Accept": "application/json"})
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedMetadata(
                "Upstream returned a non-JSON body",
                payload={"url": self._redact_url(url)},
            ) from exc

    def get_bytes(self, url: str) -> bytes:
        """GET ``url`` and return the full body, streamed in chunks."""

        response = self._request(url, stream=True)
        buffer = bytearray()
        try:
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    buffer.extend(chunk)
        except RequestException as exc:
            raise UpstreamUnavailable(
                "Download interrupted",
                payload={"url": self._redact_url(url)},
            ) from exc
        finally:
            response.close()
        self._logger.info(
            "countyreport.http downloaded url=%s bytes=%d",
            self._redact_url(url),
            len(buffer),
        )
        return bytes(buffer)

    def close(self) -> None:
        """Release the underlying HTTP session."""

        self._session.close()

    # Internal helpers -------------------------------------------------

    def _request(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        stream: bool = False,
        expected_status: Iterable[int] = (200,),
    ) -> Response:
        retry = self._config.retries
        attempts = max(1, retry.max_attempts)
        base_backoff = max(0.01, retry.backoff_ms / 1000.0)
        max_backoff = max(base_backoff, retry.max_backoff_ms / 1000.0)
        expected = tuple(expected_status)
        redacted = self._redact_url(url)
        last_error: UpstreamUnavailable | None = None

        for attempt in range(1, attempts + 1):
            try:
                response = self._session.get(
                    url,
                    headers=dict(headers or {}),
                    timeout=self._config.timeout_sec,
                    stream=stream,
                )
            except Timeout as exc:
                last_error = UpstreamUnavailable("Request timed out", payload={"url": redacted})
                self._logger.warning(
                    "countyreport.http timeout url=%s attempt=%d",
                    redacted,
                    attempt,
                    exc_info=exc,
                )
            except (ConnectionError, RequestException) as exc:
                last_error = UpstreamUnavailable("Request failed", payload={"url": redacted})
                self._logger.warning(
                    "countyreport.http connection_error url=%s attempt=%d error=%s",
                    redacted,
                    attempt,
                    type(exc).__name__,
                )
            else:
                status = response.status_code
                if status in expected:
                    return response
                response.close()
                if status in RETRYABLE_STATUS:
                    self._logger.warning(
                        "countyreport.http retryable_status url=%s status=%d attempt=%d",
                        redacted,
                        status,
                        attempt,
                    )
                    last_error = UpstreamUnavailable(
                        f"Upstream returned HTTP {status}",
                        payload={"url": redacted, "status": status},
                    )
                else:
                    raise UpstreamUnavailable(
                        f"Unexpected status {status}",
                        payload={"url": redacted, "status": status},
                    )

            if attempt < attempts:
                self._sleep_with_backoff(base_backoff, max_backoff, attempt)

        if last_error is None:  # pragma: no cover - loop always runs once
            raise UpstreamUnavailable("Exhausted retries", payload={"url": redacted})
        raise last_error

    def _redact_url(self, url: str) -> str:
        if "?" in url:
            return url.split("?")[0]
        return url

    def _sleep_with_backoff(self, base: float, maximum: float, attempt: int) -> None:
        delay = min(maximum, base * (2 ** (attempt - 1)))
        jitter = random.uniform(0, delay / 2)
        time.sleep(delay + jitter)


__all__ = ["ReportHttpClient", "USER_AGENT", "RETRYABLE_STATUS"]
