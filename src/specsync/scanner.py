"""Scan orchestration: one pass over the catalogue.

:class:`ScanOrchestrator` drives a small state machine::

    IDLE -> LOADING -> SCANNING -> PERSISTING -> DONE
                 \\          \\            \\
                  +----------+------------+--> FAILED

* **LOADING** takes the catalogue lock, loads and validates the catalogue,
  expands it into spec units and checks that a host token is available when
  any repository-hosted entry needs one.
* **SCANNING** evaluates every unit on a thread pool. Each unit runs
  resolve -> classify -> (fetch + materialize) and its outcome is stored in
  the slot matching its catalogue position, so the report order never
  depends on completion order. A :class:`~specsync.exceptions.UnitError`
  is caught at the unit boundary and recorded; nothing is retried.
* **PERSISTING** builds a new catalogue from the outcomes, rewrites it
  atomically, writes the report artifacts and releases the lock.

Dry runs stop after classification: nothing is fetched, no lock is taken
and the catalogue is left alone.
"""

from __future__ import annotations

import enum
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import httpx

from specsync.client import HostPool
from specsync.config import resolve_credential
from specsync.detector import classify
from specsync.exceptions import ConfigError, MissingCredentialError, SpecsyncError, UnitError
from specsync.expander import expand
from specsync.fetcher import SpecFetcher
from specsync.models import (
    ChangeKind,
    ManualTrackingNotice,
    NotAvailable,
    RegistryEntry,
    ScanConfig,
    ScanError,
    ScanReport,
    SpecUnit,
    UpdateResult,
)
from specsync.output import get_output
from specsync.registry import RegistryStore, with_version
from specsync.report import write_report, write_summary
from specsync.sources import SourceRegistry, create_default_registry

ProgressCallback = Callable[[int, int, SpecUnit], None]


class ScanState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    SCANNING = "scanning"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class UnitOutcome:
    """What happened to one unit during a scan."""

    unit: SpecUnit
    checked_at: datetime
    new_version: Optional[str] = None
    update: Optional[UpdateResult] = None
    pending: Optional[UpdateResult] = None
    error: Optional[ScanError] = None
    notice: Optional[ManualTrackingNotice] = None
    unchanged: bool = False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScanOrchestrator:
    """Run a single scan pass over a catalogue.

    An orchestrator is single-use; create a new one for every pass.

    Args:
        store: The catalogue to scan.
        sources: Handlers for every source type in the catalogue.
        fetcher: Retrieves and materializes changed specs.
        token: Host token; required (non-empty) when the catalogue holds
            ``github`` or ``internalRepo`` entries.
        concurrency: Number of units evaluated in parallel.
        dry_run: Resolve and classify only.
        lock_timeout: Seconds to wait for the catalogue lock.
        lock_ttl: Expiry of a held catalogue lock.
        summary_path: Where to write ``UPDATE_SUMMARY.md`` when updates exist.
        report_path: Where to write the JSON scan report, if anywhere.
        clock: Source of ``lastChecked`` timestamps.
        progress: Called as ``progress(done, total, unit)`` after each unit.
    """

    def __init__(
        self,
        store: RegistryStore,
        sources: SourceRegistry,
        fetcher: SpecFetcher,
        *,
        token: str = "",
        concurrency: int = 8,
        dry_run: bool = False,
        lock_timeout: float = 60.0,
        lock_ttl: int = 900,
        summary_path: Optional[Path] = None,
        report_path: Optional[Path] = None,
        clock: Callable[[], datetime] = _utcnow,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        self._store = store
        self._sources = sources
        self._fetcher = fetcher
        self._token = token
        self._concurrency = max(1, concurrency)
        self._dry_run = dry_run
        self._lock_timeout = lock_timeout
        self._lock_ttl = lock_ttl
        self._summary_path = summary_path
        self._report_path = report_path
        self._clock = clock
        self._progress = progress
        self._state = ScanState.IDLE

    @property
    def state(self) -> ScanState:
        return self._state

    def run(self) -> ScanReport:
        """Execute the pass and return its report.

        Raises:
            RegistryLockedError: If the catalogue lock is held elsewhere.
            RegistryCorruptError: If the catalogue cannot be loaded.
            MissingCredentialError: If a host token is needed but absent.
        """
        if self._state != ScanState.IDLE:
            raise SpecsyncError(f"Scan already ran (state: {self._state.value})")

        started_at = self._clock()
        lock = None if self._dry_run else self._store.lock(self._lock_timeout, self._lock_ttl)
        try:
            self._state = ScanState.LOADING
            if lock is not None:
                lock.acquire()
            entries = self._store.load()
            units = expand(entries)
            self._check_credential(entries)

            self._state = ScanState.SCANNING
            outcomes = self._scan(units)

            self._state = ScanState.PERSISTING
            if not self._dry_run:
                self._store.save(self._apply(entries, outcomes))
            report = _build_report(outcomes, started_at, self._clock(), self._dry_run)
            self._write_artifacts(report)
        except BaseException:
            self._state = ScanState.FAILED
            raise
        finally:
            if lock is not None:
                lock.release()

        self._state = ScanState.DONE
        return report

    # ------------------------------------------------------------------ #
    # LOADING
    # ------------------------------------------------------------------ #

    def _check_credential(self, entries: list[RegistryEntry]) -> None:
        needing = [entry.name for entry in entries if entry.requires_credential]
        if needing and not self._token:
            raise MissingCredentialError(
                f"A host token is required to scan {len(needing)} repository-hosted "
                f"entr{'y' if len(needing) == 1 else 'ies'} (first: {needing[0]})"
            )

    # ------------------------------------------------------------------ #
    # SCANNING
    # ------------------------------------------------------------------ #

    def _scan(self, units: list[SpecUnit]) -> list[UnitOutcome]:
        total = len(units)
        outcomes: list[Optional[UnitOutcome]] = [None] * total
        get_output().debug(f"Scanning {total} units with concurrency={self._concurrency}")

        with ThreadPoolExecutor(max_workers=self._concurrency) as executor:
            future_to_index = {
                executor.submit(self._evaluate, unit): index for index, unit in enumerate(units)
            }
            done = 0
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                outcomes[index] = future.result()
                done += 1
                if self._progress is not None:
                    self._progress(done, total, units[index])

        return [outcome for outcome in outcomes if outcome is not None]

    def _evaluate(self, unit: SpecUnit) -> UnitOutcome:
        """Resolve, classify and (if changed) fetch one unit."""
        output = get_output()
        outcome = UnitOutcome(unit=unit, checked_at=self._clock())
        handler = self._sources.get_handler(unit.source_type)

        try:
            resolved = handler.resolve(unit)
            if isinstance(resolved, NotAvailable):
                output.debug(f"{unit.label}: manual tracking ({resolved.reason})")
                outcome.notice = _notice(unit, resolved.reason)
                return outcome

            stored = unit.stored_version
            kind = classify(stored, resolved.marker)
            output.debug(f"{unit.label}: {stored or '(none)'} -> {resolved.marker} [{kind.value}]")
            if kind == ChangeKind.UNCHANGED:
                outcome.unchanged = True
                return outcome

            if self._dry_run:
                outcome.pending = _update(unit, stored, resolved.marker, kind, resolved.reference_url)
                return outcome

            path = self._fetcher.retrieve(unit, resolved)
        except UnitError as exc:
            output.debug(f"{unit.label}: {exc.kind.value} error: {exc}")
            outcome.error = ScanError(
                entry_name=unit.entry.name,
                unit_key=unit.unit_key,
                kind=exc.kind,
                message=str(exc),
                status=exc.status,
            )
            return outcome

        outcome.new_version = resolved.marker
        outcome.update = _update(
            unit, stored, resolved.marker, kind, resolved.reference_url, str(path)
        )
        return outcome

    # ------------------------------------------------------------------ #
    # PERSISTING
    # ------------------------------------------------------------------ #

    def _apply(
        self, entries: list[RegistryEntry], outcomes: list[UnitOutcome]
    ) -> list[RegistryEntry]:
        """Build the next catalogue: new markers and ``lastChecked`` stamps."""
        updated = {entry.name: entry for entry in entries}
        for outcome in outcomes:
            name = outcome.unit.entry.name
            updated[name] = with_version(
                updated[name],
                outcome.unit.unit_key,
                version=outcome.new_version,
                checked_at=outcome.checked_at,
            )
        return [updated[entry.name] for entry in entries]

    def _write_artifacts(self, report: ScanReport) -> None:
        if self._report_path is not None:
            write_report(report, self._report_path)
        if self._summary_path is not None:
            write_summary(report, self._summary_path)


def _display_name(unit: SpecUnit) -> str:
    if unit.component is None:
        return unit.entry.label
    return f"{unit.entry.label} ({unit.component.api_name})"


def _update(
    unit: SpecUnit,
    old: str,
    new: str,
    kind: ChangeKind,
    reference_url: str,
    local_path: Optional[str] = None,
) -> UpdateResult:
    return UpdateResult(
        entry_name=unit.entry.name,
        display_name=_display_name(unit),
        unit_key=unit.unit_key,
        old_version=old,
        new_version=new,
        change_kind=kind,
        source_reference_url=reference_url,
        local_path=local_path,
    )


def _notice(unit: SpecUnit, reason: str) -> ManualTrackingNotice:
    return ManualTrackingNotice(
        entry_name=unit.entry.name,
        display_name=_display_name(unit),
        unit_key=unit.unit_key,
        source_type=unit.source_type,
        reason=reason,
        primary_url=getattr(unit.entry.location, "primary_url", None),
    )


def _build_report(
    outcomes: list[UnitOutcome], started_at: datetime, finished_at: datetime, dry_run: bool
) -> ScanReport:
    return ScanReport(
        started_at=started_at,
        finished_at=finished_at,
        dry_run=dry_run,
        updates=[o.update for o in outcomes if o.update is not None],
        pending=[o.pending for o in outcomes if o.pending is not None],
        errors=[o.error for o in outcomes if o.error is not None],
        manual=[o.notice for o in outcomes if o.notice is not None],
        unchanged=[o.unit.label for o in outcomes if o.unchanged],
    )


def load_token(token_source: str) -> str:
    """Resolve the host token, treating an unresolvable source as no token.

    Whether a missing token matters is only known once the catalogue is
    loaded, so the decision is left to :class:`ScanOrchestrator`.
    """
    try:
        return resolve_credential(token_source)
    except ConfigError as exc:
        get_output().debug(f"No host token: {exc}")
        return ""


def run_scan(
    config: ScanConfig,
    *,
    dry_run: bool = False,
    transport: Optional[httpx.BaseTransport] = None,
    progress: Optional[ProgressCallback] = None,
    clock: Callable[[], datetime] = _utcnow,
) -> ScanReport:
    """Wire up the collaborators described by *config* and run one pass.

    Args:
        config: Effective scan settings.
        dry_run: Resolve and classify only.
        transport: Optional HTTP transport shared by all host clients.
        progress: Optional per-unit progress callback.
        clock: Source of ``lastChecked`` timestamps.
    """
    token = load_token(config.token_source)
    with HostPool(
        token=token,
        default_api_url=config.github_api_url,
        timeout=config.timeout,
        transport=transport,
    ) as hosts:
        sources = create_default_registry(hosts)
        orchestrator = ScanOrchestrator(
            RegistryStore(Path(config.registry)),
            sources,
            SpecFetcher(sources, Path(config.output_dir)),
            token=token,
            concurrency=config.concurrency,
            dry_run=dry_run,
            lock_timeout=config.lock_timeout,
            lock_ttl=config.lock_ttl,
            summary_path=Path(config.summary_path) if config.summary_path else None,
            report_path=Path(config.report_path) if config.report_path else None,
            clock=clock,
            progress=progress,
        )
        return orchestrator.run()
