"""Specs hosted on third-party API hubs (``thirdPartyHub`` source type).

Two hubs are supported, selected by the location's ``hub`` field:

* ``apisGuru`` -- ``GET {baseUrl}/v2/{provider}.json`` lists the provider's
  APIs; the marker is ``<preferred version>@<updated timestamp>`` of the
  tracked API, and the content comes from that version's spec URL.
* ``swaggerHub`` -- ``GET {baseUrl}/apis/{owner}/{api}/settings/default``
  names the default version, which is the marker; the content is that
  version's ``swagger.json``.
"""

from __future__ import annotations

from typing import Any, Union

from specsync.exceptions import HttpStatusError, NotFoundError
from specsync.models import HubLocation, NotAvailable, Resolution, SourceType, SpecUnit
from specsync.sources.base import SourceHandler

APIS_GURU_URL = "https://api.apis.guru"
SWAGGERHUB_URL = "https://api.swaggerhub.com"


class ThirdPartyHubSource(SourceHandler):
    """Specs whose revisions are reported by a hub's own API."""

    @property
    def source_type(self) -> SourceType:
        return SourceType.THIRD_PARTY_HUB

    def resolve(self, unit: SpecUnit) -> Union[Resolution, NotAvailable]:
        location = unit.entry.location
        assert isinstance(location, HubLocation)
        if location.hub == "apisGuru":
            return self._resolve_apis_guru(location)
        return self._resolve_swaggerhub(location)

    def fetch(self, unit: SpecUnit, resolution: Resolution) -> bytes:
        if resolution.download_url is None:
            raise NotFoundError(f"Hub did not report a spec URL for {unit.label}", status=None)
        return self._hosts.default.get(resolution.download_url)

    def _resolve_apis_guru(self, location: HubLocation) -> Resolution:
        base = (location.base_url or APIS_GURU_URL).rstrip("/")
        provider = location.provider or ""
        key = f"{provider}:{location.service}" if location.service else provider
        listing = self._hosts.default.get_json(f"{base}/v2/{provider}.json")

        try:
            api = listing["apis"][key]
            preferred = str(api["preferred"])
            version = api["versions"][preferred]
        except (KeyError, TypeError) as exc:
            raise NotFoundError(f"APIs.guru lists no API '{key}'", status=None) from exc
        if not isinstance(version, dict):
            raise HttpStatusError(f"Unexpected APIs.guru entry for '{key}'", status=200)

        spec_url = _first(version, "openapiUrl", "swaggerUrl")
        if spec_url is None:
            raise NotFoundError(f"APIs.guru entry '{key}' has no spec URL", status=None)
        updated = version.get("updated")
        return Resolution(
            marker=f"{preferred}@{updated}" if updated else preferred,
            reference_url=spec_url,
            download_url=spec_url,
        )

    def _resolve_swaggerhub(self, location: HubLocation) -> Resolution:
        base = (location.base_url or SWAGGERHUB_URL).rstrip("/")
        api_root = f"{base}/apis/{location.owner}/{location.api}"
        settings = self._hosts.default.get_json(f"{api_root}/settings/default")

        version = settings.get("version") if isinstance(settings, dict) else None
        if not version:
            raise NotFoundError(
                f"SwaggerHub reports no default version for {location.owner}/{location.api}",
                status=None,
            )
        return Resolution(
            marker=str(version),
            reference_url=f"https://app.swaggerhub.com/apis/{location.owner}/{location.api}/{version}",
            download_url=f"{api_root}/{version}/swagger.json",
        )


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key):
            return data[key]
    return None
