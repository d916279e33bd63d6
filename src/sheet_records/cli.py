"""CLI entry point for sheet-records."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table as RichTable

from sheet_records import DEFAULT_TIMEOUT, __version__
from sheet_records.fetch import FetchError, fetch_csv
from sheet_records.io import read_csv_text, write_json, write_records
from sheet_records.models import (
    ParseResult,
    RecordSchema,
    RowLengthError,
    RunManifest,
    SheetRecordsError,
)
from sheet_records.qc import write_parse_report
from sheet_records.reader import parse
from sheet_records.report import write_report
from sheet_records.schema import load_schema
from sheet_records.utils import setup_logging, sha256_text, utcnow_iso

app = typer.Typer(
    name="sheetrec",
    help="sheet-records — Turn published spreadsheet sheets into typed records.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {escape(msg)}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"sheet-records v{__version__}")
        raise typer.Exit()


def _source_label(input_file: Path | None, url: str | None) -> str:
    if input_file is not None:
        return str(input_file.resolve())
    return url or ""


def _load_text(
    input_file: Path | None, url: str | None, sheet: str | None, timeout: float
) -> str:
    """Read CSV text from a local file or download it from a sharing URL."""
    if input_file is not None and url is None:
        return read_csv_text(input_file)
    if url is not None and input_file is None:
        if not sheet:
            raise ValueError("--sheet is required with --url")
        return fetch_csv(url, sheet, timeout=timeout)
    raise ValueError("Pass exactly one of --input or --url")


def _write_manifest(
    out_dir: Path,
    *,
    source: str,
    sheet: str | None,
    schema_path: Path,
    created_at: str,
    result: ParseResult,
    text: str | None,
    artifacts: list[Path],
    status: str = "success",
    error_code: int | None = None,
    error_message: str = "",
) -> Path:
    manifest = RunManifest(
        version=__version__,
        source=source,
        sheet=sheet or "",
        schema_path=str(schema_path.resolve()),
        output_dir=str(out_dir.resolve()),
        created_at_utc=created_at,
        rows_in=result.rows_in,
        rows_out=result.rows_out,
        sha256=sha256_text(text) if text is not None else "",
        status=status,
        error_code=error_code,
        error_message=error_message,
        artifacts=[p.name for p in artifacts],
    )
    return write_json(out_dir / "run_manifest.json", manifest.to_dict())


def _fail(
    out_dir: Path,
    *,
    source: str,
    sheet: str | None,
    schema_path: Path,
    created_at: str,
    message: str,
    text: str | None = None,
    error_code: int = 2,
) -> NoReturn:
    """Write failure artifacts, report them and exit with *error_code*."""
    result = ParseResult()
    report_path = write_parse_report(out_dir, result)
    manifest_path = _write_manifest(
        out_dir,
        source=source,
        sheet=sheet,
        schema_path=schema_path,
        created_at=created_at,
        result=result,
        text=text,
        artifacts=[report_path],
        status="failed",
        error_code=error_code,
        error_message=message,
    )
    _err(message)
    console.print(f"  Parse report -> {report_path}")
    console.print(f"  Manifest     -> {manifest_path}")
    raise typer.Exit(code=error_code)


def _print_diagnostics(result: ParseResult, limit: int = 20) -> None:
    for diag in result.diagnostics[:limit]:
        marker = "[red]x[/red]" if diag.severity == "error" else "[yellow]![/yellow]"
        where = f"row {diag.row}: " if diag.row is not None else ""
        console.print(f"  {marker} {where}{escape(diag.message)}")
    if len(result.diagnostics) > limit:
        console.print(f"  … {len(result.diagnostics) - limit} more (see parse_report.json)")


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """sheet-records CLI."""


# ── parse command ────────────────────────────────────────────────


@app.command("parse")
def parse_command(
    schema_path: Path = typer.Option(
        ..., "--schema", "-s",
        help="JSON schema file mapping field names to types.",
    ),
    input_file: Path | None = typer.Option(
        None, "--input", "-i",
        help="Local CSV export to read.",
    ),
    url: str | None = typer.Option(
        None, "--url", "-u",
        help="Sharing URL (or bare id) of the spreadsheet document.",
    ),
    sheet: str | None = typer.Option(
        None, "--sheet",
        help="Sheet name to export when using --url.",
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for records + parse report + manifest.",
    ),
    xlsx: bool = typer.Option(
        False, "--xlsx",
        help="Also write Records.xlsx.",
    ),
    strict: bool = typer.Option(
        False, "--strict",
        help="Fail when a row is shorter than the header row.",
    ),
    timeout: float = typer.Option(
        DEFAULT_TIMEOUT, "--timeout",
        help="HTTP timeout in seconds for --url.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log library messages (unknown headers, fetches).",
    ),
) -> None:
    """Parse a sheet into typed records and write them as JSON."""
    setup_logging(verbose)
    echo = _printer(quiet)
    created_at = utcnow_iso()
    source = _source_label(input_file, url)
    out_dir.mkdir(parents=True, exist_ok=True)
    failure = dict(
        source=source, sheet=sheet, schema_path=schema_path, created_at=created_at
    )

    try:
        schema = load_schema(schema_path)
    except SheetRecordsError as exc:
        _fail(out_dir, message=str(exc), **failure)

    if not quiet:
        console.print(Panel(
            f"[bold]sheet-records[/bold] v{__version__}\n"
            f"Source: {source}\nSchema: {schema_path} ({len(schema.fields)} fields)\n"
            f"Output: {out_dir}",
            title="Parse", border_style="blue",
        ))

    # ── Load ─────────────────────────────────────────────────────
    echo("[blue]>[/blue] Loading CSV …")
    try:
        text = _load_text(input_file, url, sheet, timeout)
    except (FileNotFoundError, ValueError, OSError, FetchError) as exc:
        _fail(out_dir, message=str(exc), **failure)

    try:
        # ── Parse ────────────────────────────────────────────────
        echo("[blue]>[/blue] Parsing …")
        try:
            result = parse(text, schema, strict=strict)
        except RowLengthError as exc:
            _fail(out_dir, message=str(exc), text=text, **failure)

        if not quiet:
            _print_diagnostics(result)
            console.print(
                f"  {result.rows_out} records from {result.rows_in} rows "
                f"({result.skipped_rows} blank rows skipped)"
            )

        # ── Write ────────────────────────────────────────────────
        artifacts = [
            write_records(out_dir, result.records, schema),
            write_parse_report(out_dir, result),
        ]
        if xlsx:
            echo("[blue]>[/blue] Writing Records.xlsx …")
            artifacts.append(write_report(out_dir, result, schema))
        for path in artifacts:
            echo(f"  -> {path}")

        manifest_path = _write_manifest(
            out_dir,
            source=source,
            sheet=sheet,
            schema_path=schema_path,
            created_at=created_at,
            result=result,
            text=text,
            artifacts=artifacts,
        )
        echo(f"  Manifest -> {manifest_path}")

        if not quiet:
            console.print(Panel(
                f"[green]Done[/green] — {result.rows_out} {schema.name} records",
                title="Parse Complete", border_style="green",
            ))
    except typer.Exit:
        raise
    except Exception as exc:
        _fail(
            out_dir,
            message=f"Unexpected internal error: {exc}",
            text=text,
            error_code=1,
            **failure,
        )


# ── validate command ─────────────────────────────────────────────


def _validation_table(result: ParseResult, schema: RecordSchema) -> RichTable:
    tbl = RichTable(title="Validation Summary", show_lines=True)
    tbl.add_column("Check", style="bold")
    tbl.add_column("Result")

    tbl.add_row("Schema", f"{schema.name} ({len(schema.fields)} fields)")
    tbl.add_row("Rows in", str(result.rows_in))
    tbl.add_row("Records", str(result.rows_out))
    tbl.add_row("Skipped", str(result.skipped_rows))
    for diag in result.diagnostics:
        colour = "red" if diag.severity == "error" else "yellow"
        where = f"row {diag.row}: " if diag.row is not None else ""
        tbl.add_row(diag.kind.value, f"[{colour}]{where}{escape(diag.message)}[/{colour}]")
    tbl.add_row("Status", "[red]FAIL[/red]" if result.errors else "[green]PASS[/green]")
    return tbl


@app.command()
def validate(
    schema_path: Path = typer.Option(
        ..., "--schema", "-s",
        help="JSON schema file mapping field names to types.",
    ),
    input_file: Path | None = typer.Option(
        None, "--input", "-i",
        help="Local CSV export to read.",
    ),
    url: str | None = typer.Option(
        None, "--url", "-u",
        help="Sharing URL (or bare id) of the spreadsheet document.",
    ),
    sheet: str | None = typer.Option(
        None, "--sheet",
        help="Sheet name to export when using --url.",
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for parse report + manifest.",
    ),
    timeout: float = typer.Option(
        DEFAULT_TIMEOUT, "--timeout",
        help="HTTP timeout in seconds for --url.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes parse report + manifest.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log library messages (unknown headers, fetches).",
    ),
) -> None:
    """Check a sheet against a schema without writing records.

    Writes parse_report.json + run_manifest.json only.
    Exit 0 = OK, exit 2 = structural errors or unreadable input.
    """
    setup_logging(verbose)
    created_at = utcnow_iso()
    source = _source_label(input_file, url)
    out_dir.mkdir(parents=True, exist_ok=True)
    failure = dict(
        source=source, sheet=sheet, schema_path=schema_path, created_at=created_at
    )

    try:
        schema = load_schema(schema_path)
    except SheetRecordsError as exc:
        _fail(out_dir, message=str(exc), **failure)

    if not quiet:
        console.print(Panel(
            f"[bold]sheet-records[/bold] v{__version__}  [dim]validate mode[/dim]\n"
            f"Source: {source}",
            title="Validate", border_style="cyan",
        ))

    try:
        text = _load_text(input_file, url, sheet, timeout)
    except (FileNotFoundError, ValueError, OSError, FetchError) as exc:
        _fail(out_dir, message=str(exc), **failure)

    try:
        result = parse(text, schema)
        report_path = write_parse_report(out_dir, result)
        status = "success"
        error_code: int | None = None
        error_message = ""
        if result.errors:
            status = "failed"
            error_code = 2
            error_message = f"{len(result.errors)} structural error(s)"
        manifest_path = _write_manifest(
            out_dir,
            source=source,
            sheet=sheet,
            schema_path=schema_path,
            created_at=created_at,
            result=result,
            text=text,
            artifacts=[report_path],
            status=status,
            error_code=error_code,
            error_message=error_message,
        )

        if not quiet:
            console.print(_validation_table(result, schema))
        console.print(f"  Parse report -> {report_path}")
        console.print(f"  Manifest     -> {manifest_path}")

        if result.errors:
            _err(error_message)
            raise typer.Exit(code=2)
    except typer.Exit:
        raise
    except Exception as exc:
        _fail(
            out_dir,
            message=f"Unexpected internal error: {exc}",
            text=text,
            error_code=1,
            **failure,
        )
