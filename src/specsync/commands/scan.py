"""Scan command -- run one pass over the catalogue.

``specsync scan`` resolves every catalogue unit, downloads the specs whose
upstream version changed, rewrites the catalogue and writes the change
summary. The exit status only reflects whether the scan itself could run;
per-unit failures are reported but do not fail the process unless
``--strict`` is given.
"""

from __future__ import annotations

from typing import Optional

import typer

from specsync.exceptions import SpecsyncError
from specsync.exit_codes import EXIT_UNIT_ERRORS
from specsync.models import ScanReport, SpecUnit, UpdateResult
from specsync.output import OutputFormat, get_output
from specsync.report import report_json, short_marker


def scan_command(
    registry: Optional[str] = typer.Option(
        None, "--registry", "-r", help="Catalogue file (default: registry.json)."
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", "-d", help="Root of the materialized spec tree."
    ),
    summary: Optional[str] = typer.Option(
        None, "--summary", help="Change summary path (default: UPDATE_SUMMARY.md)."
    ),
    report: Optional[str] = typer.Option(
        None, "--report", help="Write the JSON scan report to this path."
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", min=1, help="Units evaluated in parallel."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-request timeout in seconds."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Resolve and classify only; fetch and write nothing."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Exit with status 8 when any unit failed."
    ),
) -> None:
    """Check every catalogue entry for upstream spec changes.

    Example::

        specsync scan
        specsync scan --dry-run --json
        specsync scan --registry connectors/registry.json --report scan.json
    """
    from specsync.config import resolve_scan_config
    from specsync.scanner import run_scan

    output = get_output()

    def _progress(done: int, total: int, unit: SpecUnit) -> None:
        output.progress(f"[{done}/{total}] {unit.label}")

    try:
        config = resolve_scan_config(
            registry=registry,
            output_dir=output_dir,
            summary_path=summary,
            report_path=report,
            concurrency=concurrency,
            timeout=timeout,
        )
        output.debug(f"Catalogue: {config.registry}, output: {config.output_dir}")
        result = run_scan(config, dry_run=dry_run, progress=_progress)
    except SpecsyncError as exc:
        output.error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    _print_report(result)
    if result.has_updates and config.summary_path:
        output.info(f"Change summary written to {config.summary_path}")

    if strict and result.has_errors:
        raise typer.Exit(code=EXIT_UNIT_ERRORS)


def _print_report(result: ScanReport) -> None:
    output = get_output()
    if output.format == OutputFormat.JSON:
        output.print_data(report_json(result).rstrip("\n"))
        return

    changes = result.pending if result.dry_run else result.updates
    if changes:
        output.print_table(
            ["Entry", "Unit", "Change", "Old", "New", "File"],
            [_row(update) for update in changes],
            title="Would update" if result.dry_run else "Updated specs",
        )

    for err in result.errors:
        unit = f"{err.entry_name}/{err.unit_key}" if err.unit_key else err.entry_name
        output.warning(f"{unit}: {err.kind.value}: {err.message}")
    for notice in result.manual:
        output.info(f"Manual review: {notice.display_name} ({notice.reason})")

    verb = "would update" if result.dry_run else "updated"
    output.success(
        f"{len(changes)} {verb}, {len(result.unchanged)} unchanged, "
        f"{len(result.errors)} failed, {len(result.manual)} need manual review"
    )


def _row(update: UpdateResult) -> list[str]:
    return [
        update.entry_name,
        update.unit_key or "",
        update.change_kind.value,
        short_marker(update.old_version) or "-",
        short_marker(update.new_version),
        update.local_path or "",
    ]
