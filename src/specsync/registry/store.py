"""Load and rewrite the JSON catalogue.

The catalogue is a JSON array of :class:`~specsync.models.RegistryEntry`
objects with camelCase keys. Loading validates every entry and rejects
duplicate names; saving writes the whole array through
:func:`~specsync.config.atomic_write`, so readers see either the old file
or the new one.

Entries are never mutated in place. :func:`with_version` returns a copy of
an entry with new version-tracking state and leaves every other field,
including unknown ones, as it was loaded.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from specsync.config import atomic_write, get_cache_dir
from specsync.exceptions import InvalidUsageError, RegistryCorruptError, SpecsyncError
from specsync.models import RegistryEntry, UnitVersion
from specsync.registry.lock import CatalogueLock


class RegistryStore:
    """Persistent catalogue backed by a single JSON file.

    Args:
        path: Location of the catalogue file.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[RegistryEntry]:
        """Read and validate the catalogue.

        Raises:
            RegistryCorruptError: If the file is missing, is not a JSON array,
                holds an entry that fails validation, or repeats a name.
        """
        if not self._path.is_file():
            raise RegistryCorruptError(f"Catalogue not found: {self._path}")
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise RegistryCorruptError(f"Cannot read catalogue {self._path}: {exc}") from exc

        if not isinstance(raw, list):
            raise RegistryCorruptError(f"Catalogue {self._path} must be a JSON array of entries")

        entries: list[RegistryEntry] = []
        seen: set[str] = set()
        for index, item in enumerate(raw):
            try:
                entry = RegistryEntry.model_validate(item)
            except ValidationError as exc:
                label = item.get("name", f"#{index}") if isinstance(item, dict) else f"#{index}"
                raise RegistryCorruptError(
                    f"Invalid catalogue entry {label}: {_first_error(exc)}"
                ) from exc
            if entry.name in seen:
                raise RegistryCorruptError(f"Duplicate catalogue entry name '{entry.name}'")
            seen.add(entry.name)
            entries.append(entry)
        return entries

    def save(self, entries: Sequence[RegistryEntry]) -> None:
        """Atomically replace the catalogue with *entries*."""
        data = [dump_entry(entry) for entry in entries]
        try:
            atomic_write(self._path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
        except OSError as exc:
            raise SpecsyncError(f"Cannot write catalogue {self._path}: {exc}") from exc

    def lock(self, timeout: float = 60.0, ttl: int = 900) -> CatalogueLock:
        """Return an (unacquired) cross-process lock on this catalogue."""
        return CatalogueLock(self._path, get_cache_dir(), timeout=timeout, ttl=ttl)


def dump_entry(entry: RegistryEntry) -> dict[str, Any]:
    """Serialise *entry* in its on-disk (camelCase) shape."""
    return entry.model_dump(mode="json", by_alias=True, exclude_unset=True)


def find_entry(entries: Sequence[RegistryEntry], name: str) -> RegistryEntry:
    """Return the entry called *name*.

    Raises:
        InvalidUsageError: If the catalogue has no such entry.
    """
    for entry in entries:
        if entry.name == name:
            return entry
    raise InvalidUsageError(f"No catalogue entry named '{name}'")


def with_version(
    entry: RegistryEntry,
    unit_key: Optional[str] = None,
    *,
    version: Optional[str] = None,
    checked_at: Optional[datetime] = None,
) -> RegistryEntry:
    """Return a copy of *entry* with updated version-tracking state.

    ``None`` arguments leave the corresponding field alone. For a unit of a
    docs collection the unit's state is replaced under ``versionInfo.units``
    and ``checked_at`` is also stamped on the parent.
    """
    changes: dict[str, Any] = {}
    if version is not None:
        changes["last_known_version"] = version
    if checked_at is not None:
        changes["last_checked"] = checked_at

    info = entry.version_info
    if unit_key is None:
        new_info = info.model_copy(update=changes)
    else:
        units = dict(info.units or {})
        units[unit_key] = units.get(unit_key, UnitVersion()).model_copy(update=changes)
        parent: dict[str, Any] = {"units": units}
        if checked_at is not None:
            parent["last_checked"] = checked_at
        new_info = info.model_copy(update=parent)
    return entry.model_copy(update={"version_info": new_info})


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    where = ".".join(str(part) for part in error["loc"])
    return f"{where}: {error['msg']}" if where else error["msg"]
