"""Canonical models shared across all specsync modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into four groups:

**Catalogue models** -- persisted as the JSON registry file, camelCase on disk:
    :class:`RegistryEntry`, :class:`VersionInfo`, :class:`UnitVersion`, and one
    location model per :class:`SourceType` (:class:`RepoLocation`,
    :class:`UrlLocation`, :class:`DocsCollectionLocation`,
    :class:`HubLocation`, :class:`RestrictedLocation`,
    :class:`UnavailableLocation`).

**Host models** -- the release shape returned by
    :class:`~specsync.client.HostClient`: :class:`Release`, :class:`ReleaseAsset`.

**Scan models** -- ephemeral values produced while a scan runs
    (:class:`SpecUnit`, :class:`Resolution`, :class:`NotAvailable`) and the
    immutable hand-off records (:class:`UpdateResult`, :class:`ScanError`,
    :class:`ManualTrackingNotice`, :class:`ScanReport`).

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`ScanConfig`, :class:`OutputConfig`, :class:`GlobalConfig`.

Catalogue models use ``extra="allow"`` so fields the engine does not know
about survive a catalogue rewrite untouched.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# --- Enumerations ---


class SourceType(str, enum.Enum):
    """Access and versioning strategy of an upstream specification origin."""

    GITHUB = "github"
    VENDOR_PUBLIC_URL = "vendorPublicUrl"
    VENDOR_DOCS_COLLECTION = "vendorDocsCollection"
    THIRD_PARTY_HUB = "thirdPartyHub"
    INTERNAL_REPO = "internalRepo"
    RESTRICTED_ACCESS = "restrictedAccess"
    UNAVAILABLE = "unavailable"


class ChangeKind(str, enum.Enum):
    """Outcome of comparing a stored version marker with a resolved one."""

    UNCHANGED = "unchanged"
    NEW = "new"
    UPDATED = "updated"


class ErrorKind(str, enum.Enum):
    """Classification of a per-unit failure recorded in a scan report."""

    NO_RELEASE = "noRelease"
    NOT_FOUND = "notFound"
    HTTP = "http"
    NETWORK = "network"
    IO = "io"


# --- Catalogue models ---


class _CatalogueModel(BaseModel):
    """Base for models stored in the registry file (camelCase keys on disk)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class RepoLocation(_CatalogueModel):
    """Location of a spec inside a GitHub-compatible repository.

    Used by both ``github`` and ``internalRepo`` entries. ``api_url`` points
    at the REST root of a privately hosted instance and is ignored for public
    GitHub entries.
    """

    owner: str
    repo: str
    spec_path: str
    asset_name: Optional[str] = Field(
        default=None, description="Release asset name (defaults to basename of spec_path)"
    )
    track: Literal["release", "commit"] = "release"
    api: Optional[str] = Field(default=None, description="API identifier for the output path")
    api_url: Optional[str] = None

    @property
    def expected_asset_name(self) -> str:
        return self.asset_name or PurePosixPath(self.spec_path).name


class UrlLocation(_CatalogueModel):
    """A spec published at a single vendor URL."""

    primary_url: str
    format: str = "yaml"
    is_templated: bool = False
    api: Optional[str] = None


class SpecComponent(_CatalogueModel):
    """One API described inside a multi-spec documentation page.

    Exactly one extraction rule must be given: ``json_pointer`` (RFC 6901
    pointer into a JSON or YAML page) or ``pattern`` (regex; the first
    capture group, or the whole match, is the spec text).
    """

    unit_key: str
    api_name: str
    json_pointer: Optional[str] = None
    pattern: Optional[str] = None
    format: Optional[str] = None

    @field_validator("pattern")
    @classmethod
    def _compiles(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"Invalid pattern {value!r}: {exc}") from exc
        return value

    @model_validator(mode="after")
    def _one_extraction_rule(self) -> SpecComponent:
        if (self.json_pointer is None) == (self.pattern is None):
            raise ValueError(
                f"Component '{self.unit_key}' needs exactly one of jsonPointer or pattern"
            )
        return self


class DocsCollectionLocation(_CatalogueModel):
    """A documentation page bundling several independently versioned specs."""

    primary_url: str
    format: str = "multiple_specs_in_docs"
    spec_components: list[SpecComponent] = Field(default_factory=list)


class HubLocation(_CatalogueModel):
    """A spec hosted on a third-party API hub with its own versioning API."""

    hub: Literal["apisGuru", "swaggerHub"]
    provider: Optional[str] = None
    service: Optional[str] = None
    owner: Optional[str] = None
    api: Optional[str] = None
    base_url: Optional[str] = None
    format: str = "json"

    @model_validator(mode="after")
    def _hub_identifiers(self) -> HubLocation:
        if self.hub == "apisGuru" and not self.provider:
            raise ValueError("apisGuru hub locations require 'provider'")
        if self.hub == "swaggerHub" and not (self.owner and self.api):
            raise ValueError("swaggerHub hub locations require 'owner' and 'api'")
        return self


class RestrictedLocation(_CatalogueModel):
    """A spec behind a login; tracked manually."""

    primary_url: Optional[str] = None
    requires_auth: bool = True


class UnavailableLocation(_CatalogueModel):
    """No known public source."""


Location = Union[
    RepoLocation,
    UrlLocation,
    DocsCollectionLocation,
    HubLocation,
    RestrictedLocation,
    UnavailableLocation,
]

LOCATION_MODELS: dict[SourceType, type[BaseModel]] = {
    SourceType.GITHUB: RepoLocation,
    SourceType.INTERNAL_REPO: RepoLocation,
    SourceType.VENDOR_PUBLIC_URL: UrlLocation,
    SourceType.VENDOR_DOCS_COLLECTION: DocsCollectionLocation,
    SourceType.THIRD_PARTY_HUB: HubLocation,
    SourceType.RESTRICTED_ACCESS: RestrictedLocation,
    SourceType.UNAVAILABLE: UnavailableLocation,
}


class UnitVersion(_CatalogueModel):
    """Version-tracking state of one spec unit."""

    last_known_version: str = ""
    last_checked: Optional[datetime] = None


class VersionInfo(UnitVersion):
    """Version-tracking state of a registry entry.

    ``units`` is only populated for ``vendorDocsCollection`` entries, keyed by
    :attr:`SpecComponent.unit_key`.
    """

    units: Optional[dict[str, UnitVersion]] = None


class RegistryEntry(_CatalogueModel):
    """One tracked connector / spec family.

    The engine only ever replaces :attr:`version_info`; every other field,
    including unknown ones, is written back exactly as it was loaded.

    Example::

        RegistryEntry(
            name="acme-api",
            source_type=SourceType.GITHUB,
            location=RepoLocation(owner="acme", repo="api", spec_path="openapi.yaml"),
        )
    """

    name: str = Field(min_length=1)
    display_name: Optional[str] = None
    vendor: Optional[str] = None
    module_version: Optional[str] = None
    source_type: SourceType
    location: Location = Field(default_factory=UnavailableLocation)
    version_info: VersionInfo = Field(default_factory=VersionInfo)

    @model_validator(mode="before")
    @classmethod
    def _coerce_location(cls, data: Any) -> Any:
        """Validate ``location`` against the model selected by ``sourceType``."""
        if not isinstance(data, dict):
            return data
        raw_type = data.get("sourceType", data.get("source_type"))
        try:
            source_type = SourceType(raw_type)
        except ValueError:
            # Let field validation report the bad source type.
            return data
        model = LOCATION_MODELS[source_type]
        location = data.get("location")
        if location is None:
            location = {}
        if isinstance(location, dict):
            location = model.model_validate(location)
        elif not isinstance(location, model):
            raise ValueError(
                f"location of a '{source_type.value}' entry must be a {model.__name__}"
            )
        return {**data, "location": location}

    @property
    def label(self) -> str:
        """Human-readable name for reports."""
        return self.display_name or self.name

    @property
    def submodule_units(self) -> list[SpecComponent]:
        """Declared sub-specs of a ``vendorDocsCollection`` entry."""
        if isinstance(self.location, DocsCollectionLocation):
            return list(self.location.spec_components)
        return []

    @property
    def requires_credential(self) -> bool:
        return self.source_type in (SourceType.GITHUB, SourceType.INTERNAL_REPO)


# --- Host models ---


class ReleaseAsset(BaseModel):
    """A file attached to a release."""

    name: str
    url: str = Field(description="API URL of the asset (download with Accept: octet-stream)")
    browser_download_url: Optional[str] = None


class Release(BaseModel):
    """A published (or draft / pre-release) release on the upstream host."""

    tag: str
    published_at: Optional[datetime] = None
    is_draft: bool = False
    is_prerelease: bool = False
    html_url: Optional[str] = None
    assets: list[ReleaseAsset] = Field(default_factory=list)

    @property
    def is_stable(self) -> bool:
        return not (self.is_draft or self.is_prerelease)


# --- Ephemeral scan values ---


@dataclass(frozen=True)
class SpecUnit:
    """One independently versioned spec, built fresh for every scan pass.

    Attributes:
        entry: The parent registry entry.
        unit_key: Sub-spec key for docs collections, ``None`` otherwise.
        component: The sub-spec declaration for docs collections.
    """

    entry: RegistryEntry
    unit_key: Optional[str] = None
    component: Optional[SpecComponent] = None

    @property
    def label(self) -> str:
        if self.unit_key is None:
            return self.entry.name
        return f"{self.entry.name}/{self.unit_key}"

    @property
    def source_type(self) -> SourceType:
        return self.entry.source_type

    @property
    def stored_version(self) -> str:
        info = self.entry.version_info
        if self.unit_key is None:
            return info.last_known_version
        unit = (info.units or {}).get(self.unit_key)
        return unit.last_known_version if unit else ""


@dataclass(frozen=True)
class Resolution:
    """A freshly resolved version marker.

    Attributes:
        marker: Opaque version marker (tag, commit SHA, ``sha256:`` digest,
            hub revision).
        reference_url: Human-facing URL of the resolved version.
        content: Spec bytes when resolving already downloaded them.
        release: The selected release for release-tracked repositories.
        download_url: Direct content URL discovered while resolving.
    """

    marker: str
    reference_url: str
    content: Optional[bytes] = None
    release: Optional[Release] = None
    download_url: Optional[str] = None


@dataclass(frozen=True)
class NotAvailable:
    """A unit that cannot be resolved automatically (manual tracking)."""

    reason: str


# --- Hand-off records ---


class _ReportModel(BaseModel):
    """Base for immutable scan output records (camelCase JSON)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class UpdateResult(_ReportModel):
    """A unit whose upstream content changed and was materialized locally."""

    entry_name: str
    display_name: str
    unit_key: Optional[str] = None
    old_version: str
    new_version: str
    change_kind: ChangeKind
    source_reference_url: str
    local_path: Optional[str] = None


class ScanError(_ReportModel):
    """A per-unit failure recorded during a scan."""

    entry_name: str
    unit_key: Optional[str] = None
    kind: ErrorKind
    message: str
    status: Optional[int] = None


class ManualTrackingNotice(_ReportModel):
    """A unit the engine cannot check; someone has to look at it by hand."""

    entry_name: str
    display_name: str
    unit_key: Optional[str] = None
    source_type: SourceType
    reason: str
    primary_url: Optional[str] = None


class ScanReport(_ReportModel):
    """Everything one scan pass produced, in catalogue order.

    ``pending`` is only filled in dry-run mode, with the updates that
    would have been fetched.
    """

    started_at: datetime
    finished_at: datetime
    dry_run: bool = False
    updates: list[UpdateResult] = Field(default_factory=list)
    pending: list[UpdateResult] = Field(default_factory=list)
    errors: list[ScanError] = Field(default_factory=list)
    manual: list[ManualTrackingNotice] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)

    @property
    def has_updates(self) -> bool:
        return bool(self.updates)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


# --- Configuration models ---


class ScanConfig(BaseModel):
    """Settings for a scan pass, stored in :class:`GlobalConfig` or ``specsync.json``."""

    registry: str = Field(default="registry.json", description="Catalogue file path")
    output_dir: str = Field(default="openapi", description="Root of materialized specs")
    summary_path: str = Field(
        default="UPDATE_SUMMARY.md", description="Change summary written when updates exist"
    )
    report_path: Optional[str] = Field(
        default=None, description="Optional JSON scan report path"
    )
    token_source: str = Field(
        default="env:GITHUB_TOKEN", description="Credential source: env:VAR or file:/path"
    )
    github_api_url: str = "https://api.github.com"
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    concurrency: int = Field(default=8, ge=1, description="Units evaluated in parallel")
    lock_timeout: float = Field(
        default=60.0, ge=0, description="Seconds to wait for the catalogue lock"
    )
    lock_ttl: int = Field(
        default=900, ge=1, description="Seconds after which a held lock expires"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(default="auto", description="Output format: auto, json, plain, rich")


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/specsync/config.json``.

    Fields here have the lowest precedence and can be overridden by project
    config, environment variables, or CLI flags. See
    :func:`~specsync.config.resolve_scan_config`.
    """

    scan: ScanConfig = Field(default_factory=ScanConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
