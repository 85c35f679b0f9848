"""Registry commands -- inspect and hand-edit the connector catalogue.

Provides the ``specsync registry`` sub-command group. ``list``, ``show`` and
``validate`` are read-only. ``set-version`` is the manual override: it is the
only way a version gets recorded for ``restrictedAccess`` and ``unavailable``
entries, and it follows the same lock-and-atomic-rewrite discipline as a
scan.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer

from specsync.exceptions import InvalidUsageError, SpecsyncError
from specsync.models import RegistryEntry, SourceType
from specsync.output import OutputFormat, get_output
from specsync.report import short_marker


registry_app = typer.Typer(no_args_is_help=True)

_MANUAL_TYPES = (SourceType.RESTRICTED_ACCESS, SourceType.UNAVAILABLE)

_REGISTRY_OPTION = typer.Option(
    None, "--registry", "-r", help="Catalogue file (default: registry.json)."
)


def _store(registry: Optional[str]):  # noqa: ANN202
    from specsync.config import resolve_scan_config
    from specsync.registry import RegistryStore

    config = resolve_scan_config(registry=registry)
    return RegistryStore(Path(config.registry)), config


def _fail(exc: SpecsyncError) -> typer.Exit:
    get_output().error(str(exc))
    return typer.Exit(code=exc.exit_code)


def _version_cell(entry: RegistryEntry) -> str:
    if entry.submodule_units:
        units = entry.version_info.units or {}
        known = sum(1 for unit in units.values() if unit.last_known_version)
        return f"{known}/{len(entry.submodule_units)} units"
    return short_marker(entry.version_info.last_known_version) or "-"


def _checked_cell(entry: RegistryEntry) -> str:
    checked = entry.version_info.last_checked
    return checked.strftime("%Y-%m-%d %H:%M") if checked else "never"


@registry_app.command("list")
def registry_list(registry: Optional[str] = _REGISTRY_OPTION) -> None:
    """List catalogue entries with their recorded versions.

    Example::

        specsync registry list
        specsync --json registry list
    """
    try:
        store, _ = _store(registry)
        entries = store.load()
    except SpecsyncError as exc:
        raise _fail(exc) from None

    get_output().print_table(
        ["Name", "Display name", "Source", "Version", "Last checked"],
        [
            [
                entry.name,
                entry.label,
                entry.source_type.value,
                _version_cell(entry),
                _checked_cell(entry),
            ]
            for entry in entries
        ],
        title=f"Catalogue ({len(entries)} entries)",
    )


@registry_app.command("show")
def registry_show(
    name: str = typer.Argument(help="Entry name."),
    registry: Optional[str] = _REGISTRY_OPTION,
) -> None:
    """Show one catalogue entry as stored on disk.

    Example::

        specsync registry show acme-api
    """
    from specsync.registry import dump_entry, find_entry

    try:
        store, _ = _store(registry)
        entry = find_entry(store.load(), name)
    except SpecsyncError as exc:
        raise _fail(exc) from None

    get_output().print_json(dump_entry(entry))


@registry_app.command("validate")
def registry_validate(registry: Optional[str] = _REGISTRY_OPTION) -> None:
    """Check that the catalogue parses and its units are well-formed.

    Exits with status 7 when the catalogue is corrupt.
    """
    from specsync.expander import expand

    output = get_output()
    try:
        store, _ = _store(registry)
        entries = store.load()
        units = expand(entries)
    except SpecsyncError as exc:
        raise _fail(exc) from None

    manual = [e.name for e in entries if e.source_type in _MANUAL_TYPES]
    if output.format == OutputFormat.JSON:
        output.print_json(
            {
                "path": str(store.path),
                "entries": len(entries),
                "units": len(units),
                "manual": manual,
            }
        )
        return
    output.success(f"{store.path}: {len(entries)} entries, {len(units)} spec units")
    if manual:
        output.info(f"Tracked manually: {', '.join(manual)}")


@registry_app.command("set-version")
def registry_set_version(
    name: str = typer.Argument(help="Entry name."),
    version: str = typer.Argument(help="Version marker to record."),
    unit: Optional[str] = typer.Option(
        None, "--unit", "-u", help="Unit key of a docs-collection component."
    ),
    registry: Optional[str] = _REGISTRY_OPTION,
) -> None:
    """Record a version by hand.

    Use after reviewing a manually tracked spec. The recorded
    marker is compared verbatim on the next scan.

    Example::

        specsync registry set-version partner-api 2024-06
        specsync registry set-version acme-docs v3 --unit billing
    """
    from specsync.registry import find_entry, with_version

    try:
        if not version.strip():
            raise InvalidUsageError("Version must not be empty")
        store, config = _store(registry)
        with store.lock(config.lock_timeout, config.lock_ttl):
            entries = store.load()
            entry = find_entry(entries, name)
            _check_unit(entry, unit)
            replacement = with_version(
                entry, unit, version=version, checked_at=datetime.now(timezone.utc)
            )
            store.save([replacement if e.name == name else e for e in entries])
    except SpecsyncError as exc:
        raise _fail(exc) from None

    target = f"{name}/{unit}" if unit else name
    get_output().success(f"Recorded {target} = {version}")


def _check_unit(entry: RegistryEntry, unit: Optional[str]) -> None:
    keys = [component.unit_key for component in entry.submodule_units]
    if unit is None and keys:
        get_output().suggest(
            f"specsync registry set-version {entry.name} <version> --unit {keys[0]}"
        )
        raise InvalidUsageError(
            f"'{entry.name}' is a docs collection; pass --unit (one of: {', '.join(keys)})"
        )
    if unit is not None and unit not in keys:
        raise InvalidUsageError(f"'{entry.name}' has no unit '{unit}'")
