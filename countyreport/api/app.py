"""FastAPI application serving county data from the latest report."""

from __future__ import annotations

import html
import time
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse

from countyreport import __version__
from countyreport.config import ReportServiceConfig, resolve_config
from countyreport.core.errors import ReportError
from countyreport.core.logger import get_logger
from countyreport.services.extractor.mapping import FIPS_PARAM, FieldMapping, parse_fips
from countyreport.services.report_service import ReportService

LOGGER = get_logger()


def create_app(
    service: ReportService | None = None,
    *,
    config: ReportServiceConfig | None = None,
) -> FastAPI:
    """Build the application around ``service`` (or one built from config)."""

    if service is None:
        service = ReportService.from_config(config or resolve_config())

    app = FastAPI(title="County Report", version=__version__)
    app.state.report_service = service

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        LOGGER.info(
            "countyreport.api request method=%s path=%s status=%d duration_ms=%.1f",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    @app.exception_handler(ReportError)
    async def report_error_handler(request: Request, exc: ReportError) -> JSONResponse:
        if exc.status_code >= 500:
            LOGGER.error(
                "countyreport.api failed path=%s error=%s message=%s payload=%s",
                request.url.path,
                type(exc).__name__,
                exc,
                exc.payload,
                exc_info=exc,
            )
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        LOGGER.exception("countyreport.api unexpected_error path=%s", request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    @app.get("/denver-transmission-categories")
    def denver_transmission_categories() -> dict[str, Any]:
        return service.denver_transmission_categories().to_payload()

    @app.get("/county-data")
    def county_data(request: Request) -> dict[str, Any]:
        params = request.query_params
        selectors = parse_fips(params.get(FIPS_PARAM))
        mapping = FieldMapping.from_query(params.multi_items())
        return service.county_data(selectors, mapping).to_payload()

    @app.get("/report-links", response_class=HTMLResponse)
    def report_links() -> str:
        links = [f'<a href="{html.escape(url)}">{html.escape(url)}</a>' for url in service.report_links()]
        return "<br />\n".join(links)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "version": __version__, "cache": service.cache_stats()}

    @app.on_event("shutdown")
    def close_service() -> None:
        service.close()

    return app


__all__ = ["create_app"]
