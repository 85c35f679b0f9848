"""Scan report artifacts handed to downstream tooling.

Two artifacts are produced:

* the **JSON report** (:func:`write_report`), the full
  :class:`~specsync.models.ScanReport` with camelCase keys, and
* the **change summary** (:func:`write_summary`), a Markdown document whose
  first line is ``# <title>`` so it can double as a commit message and pull
  request body.

The summary exists only while there is something to act on: it is written
when a scan produced updates and removed after a real scan that produced
none, so "file present" always means "updates pending". Dry runs never
write it.
"""

from __future__ import annotations

import json
from pathlib import Path

from specsync.config import atomic_write
from specsync.models import ChangeKind, ScanReport, UpdateResult

_MARKER_WIDTH = 19


def short_marker(marker: str) -> str:
    """Abbreviate content-hash markers for human-facing text."""
    if marker.startswith("sha256:") and len(marker) > _MARKER_WIDTH:
        return marker[:_MARKER_WIDTH]
    return marker


def summary_title(updates: list[UpdateResult]) -> str:
    if len(updates) == 1:
        update = updates[0]
        return f"Update {update.display_name} OpenAPI spec to {short_marker(update.new_version)}"
    return f"Update OpenAPI specs for {len(updates)} connectors"


def render_summary(report: ScanReport) -> str:
    """Render the Markdown change summary for *report*."""
    updates = report.updates or report.pending
    lines = [f"# {summary_title(updates)}", ""]

    if report.dry_run:
        lines += ["_Dry run: nothing was downloaded and the catalogue is unchanged._", ""]

    lines += ["## Updated specifications", ""]
    for update in updates:
        if update.change_kind == ChangeKind.NEW:
            change = f"new at `{short_marker(update.new_version)}`"
        else:
            change = (
                f"`{short_marker(update.old_version)}` -> `{short_marker(update.new_version)}`"
            )
        lines.append(f"- **{update.display_name}**: {change}")
        lines.append(f"  - Source: {update.source_reference_url}")
        if update.local_path:
            lines.append(f"  - File: `{update.local_path}`")
    lines.append("")

    if report.errors:
        lines += ["## Failed checks", ""]
        for error in report.errors:
            unit = f"{error.entry_name}/{error.unit_key}" if error.unit_key else error.entry_name
            status = f" (HTTP {error.status})" if error.status else ""
            lines.append(f"- `{unit}`: {error.kind.value}{status}: {error.message}")
        lines.append("")

    if report.manual:
        lines += ["## Needs manual review", ""]
        for notice in report.manual:
            where = f" ({notice.primary_url})" if notice.primary_url else ""
            lines.append(f"- {notice.display_name}{where}: {notice.reason}")
        lines.append("")

    return "\n".join(lines)


def write_summary(report: ScanReport, path: Path) -> bool:
    """Write (or clear) the change summary at *path*.

    Returns:
        ``True`` if a summary was written.
    """
    if report.has_updates:
        atomic_write(path, render_summary(report))
        return True
    if not report.dry_run:
        path.unlink(missing_ok=True)
    return False


def report_json(report: ScanReport) -> str:
    data = report.model_dump(mode="json", by_alias=True)
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_report(report: ScanReport, path: Path) -> None:
    """Write the JSON scan report to *path*."""
    atomic_write(path, report_json(report))
