"""Typer based command line entry points for countyreport."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import typer

from countyreport.config import ReportServiceConfig, resolve_config
from countyreport.core.errors import ReportError
from countyreport.core.logger import get_logger, set_level
from countyreport.services.extractor.mapping import DENVER_AREA_FIPS, FieldMapping, parse_fips
from countyreport.services.report_service import ReportService

LOGGER = get_logger()

app = typer.Typer(help="Resolve and query the latest Community Profile Report.")


def _config(ctx: typer.Context) -> ReportServiceConfig:
    return ctx.obj["config"]


def _handle_error(exc: Exception) -> None:
    LOGGER.error("countyreport command failed: %s", exc, exc_info=True)
    typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.callback()
def main_callback(
    ctx: typer.Context,
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Set global logging level (e.g. DEBUG/INFO/WARNING).",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        help="YAML file with a 'countyreport' section.",
    ),
) -> None:
    """Configure logging and resolve configuration before executing commands."""

    try:
        set_level(log_level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        config = resolve_config(config_path)
    except ReportError as exc:
        _handle_error(exc)
    ctx.obj = {"config": config}


@app.command("serve")
def cmd_serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: Optional[int] = typer.Option(None, "--port", help="Listen port (default from PORT)"),
) -> None:
    """Run the HTTP API."""

    import uvicorn

    from countyreport.api.app import create_app

    config = _config(ctx)
    bind_host = host or config.host
    bind_port = port or config.port
    LOGGER.info("countyreport.cli serve host=%s port=%d", bind_host, bind_port)
    uvicorn.run(create_app(config=config), host=bind_host, port=bind_port, log_level="info")


@app.command("latest-url")
def cmd_latest_url(ctx: typer.Context) -> None:
    """Print the download URL of the latest report."""

    service = ReportService.from_config(_config(ctx))
    try:
        typer.echo(service.latest_report_url())
    except ReportError as exc:
        _handle_error(exc)
    finally:
        service.close()


@app.command("report-links")
def cmd_report_links(ctx: typer.Context) -> None:
    """List download URLs of every spreadsheet in the latest archive entry."""

    service = ReportService.from_config(_config(ctx))
    try:
        urls = service.report_links()
    except ReportError as exc:
        _handle_error(exc)
    else:
        if not urls:
            typer.echo("<empty>")
        for url in urls:
            typer.echo(url)
    finally:
        service.close()


@app.command("county-data")
def cmd_county_data(
    ctx: typer.Context,
    fips: Optional[str] = typer.Option(None, "--fips", help="Comma separated FIPS codes"),
    denver: bool = typer.Option(False, "--denver", help="Use the built-in Denver area codes"),
    fields: List[str] = typer.Option([], "--field", help="Output field as name=COLUMN (repeatable)"),
) -> None:
    """Extract county records from the latest report as JSON."""

    service = ReportService.from_config(_config(ctx))
    try:
        selectors = DENVER_AREA_FIPS if denver else parse_fips(fips)
        mapping = FieldMapping.parse_pairs(fields)
        result = service.county_data(selectors, mapping)
    except ReportError as exc:
        _handle_error(exc)
    else:
        typer.echo(json.dumps(result.to_payload(), indent=2, default=str, ensure_ascii=False))
    finally:
        service.close()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
