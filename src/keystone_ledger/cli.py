from __future__ import annotations

import signal
import threading
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Literal

import typer
from pydantic import ValidationError

from .core import run_pipeline
from .fetcher import RankingClient
from .io import FileStorage, InputError, load_catalog_json
from .logging import Events, Logger
from .models import PipelineConfig
from .report import (
    JsonReportSink,
    MultiReportSink,
    WorkbookReportSink,
    write_text_summary,
)

if TYPE_CHECKING:
    from .protocols import StorageProtocol

app = typer.Typer(add_completion=False)

DEFAULT_CONFIG = Path("config/pipeline.json")
DEFAULT_ROSTER = Path("config/roster.csv")


@app.callback()
def root() -> None:
    """Keystone run report CLI."""


def resolve_config(
    storage: StorageProtocol,
    config_path: Path | None,
    catalog_path: Path | None = None,
    **overrides: object,
) -> PipelineConfig:
    """Load the config file (or defaults) and apply command-line overrides."""
    path = config_path or DEFAULT_CONFIG
    try:
        if config_path is not None or path.exists():
            config = storage.load_config(path)
        else:
            config = PipelineConfig()
        values = config.model_dump()
        if catalog_path is not None:
            values["catalog"] = load_catalog_json(catalog_path)
        values.update(
            {key: value for key, value in overrides.items() if value is not None}
        )
        return PipelineConfig.model_validate(values)
    except InputError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid configuration: {exc}") from exc


@app.command()
def run(
    config: Annotated[
        Path | None,
        typer.Option(help="Pipeline config JSON (default: config/pipeline.json)"),
    ] = None,
    roster: Annotated[
        Path | None,
        typer.Option(help="CSV of name,realm rows (default: config/roster.csv)"),
    ] = None,
    catalog: Annotated[
        Path | None,
        typer.Option(help="JSON list of dungeon names overriding the config"),
    ] = None,
    region: Annotated[
        str | None, typer.Option(help="Service region (e.g. us, eu)")
    ] = None,
    extra_fields: Annotated[
        str | None, typer.Option(help="Comma-separated extra profile fields")
    ] = None,
    workers: Annotated[
        int | None, typer.Option(help="Concurrent profile fetches (1-8)")
    ] = None,
    timeout: Annotated[
        float | None, typer.Option(help="Per-request timeout in seconds")
    ] = None,
    out: Annotated[Path, typer.Option(help="Output JSON path")] = Path(
        "out/report.json"
    ),
    workbook: Annotated[Path, typer.Option(help="Output workbook path")] = Path(
        "out/report.xlsx"
    ),
    summary: Annotated[Path, typer.Option(help="Summary output path")] = Path(
        "out/summary.txt"
    ),
    log_level: Annotated[
        str, typer.Option(help="Minimum log level (debug, info, warn, error)")
    ] = "info",
) -> None:
    if log_level not in {"debug", "info", "warn", "error"}:
        raise typer.BadParameter(f"Unknown log level: {log_level}")
    level: Literal["debug", "info", "warn", "error"]
    level = log_level  # type: ignore[assignment]

    storage = FileStorage()
    pipeline_config = resolve_config(
        storage,
        config,
        catalog,
        region=region,
        extra_fields=extra_fields,
        max_workers=workers,
        timeout_seconds=timeout,
    )

    roster_path = roster or DEFAULT_ROSTER
    try:
        identities = storage.load_roster(roster_path, pipeline_config.region)
    except InputError as exc:
        raise typer.BadParameter(str(exc)) from exc

    run_id = uuid.uuid4().hex[:12]
    logger = Logger(run_id=run_id, min_level=level)
    logger.info(
        Events.DATA_LOADED,
        f"Loaded {len(identities)} characters from {roster_path}",
        data={
            "roster": len(identities),
            "catalog": len(pipeline_config.catalog),
            "region": pipeline_config.region,
        },
    )

    client = RankingClient(
        pipeline_config.api_base_url,
        timeout_seconds=pipeline_config.timeout_seconds,
    )
    sink = MultiReportSink(
        JsonReportSink(out, run_id=run_id), WorkbookReportSink(workbook)
    )

    cancel_event = threading.Event()
    previous_handler = signal.signal(signal.SIGINT, lambda *_: cancel_event.set())
    try:
        result = run_pipeline(
            identities,
            pipeline_config,
            client,
            sink,
            logger=logger,
            cancel_event=cancel_event,
        )
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        client.close()
        sink.close()

    write_text_summary(storage, summary, result)
    logger.info(
        Events.DATA_WRITTEN,
        "Wrote report outputs",
        data={"json": str(out), "workbook": str(workbook), "summary": str(summary)},
    )

    typer.echo(f"Reported {len(result.reports)} characters")
    if result.failures:
        typer.echo(f"Failed {len(result.failures)} characters")
    typer.echo(f"Wrote report to {out}")
    typer.echo(f"Wrote workbook to {workbook}")
    typer.echo(f"Wrote summary to {summary}")
    if result.aborted:
        raise typer.Exit(code=130)


@app.command()
def show_catalog(
    config: Annotated[
        Path | None,
        typer.Option(help="Pipeline config JSON (default: config/pipeline.json)"),
    ] = None,
    catalog: Annotated[
        Path | None,
        typer.Option(help="JSON list of dungeon names overriding the config"),
    ] = None,
) -> None:
    pipeline_config = resolve_config(FileStorage(), config, catalog)
    for idx, dungeon in enumerate(pipeline_config.catalog, start=1):
        typer.echo(f"{idx}. {dungeon}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
