from ipaddress import IPv4Address, IPv6Address
from types import SimpleNamespace
from typing import Any

from ip_lookup.errors import IpNotFoundError
from ip_lookup.models.common import GeoRecord
from ip_lookup.providers.base import BaseGeoLookupProvider

MOUNTAIN_VIEW = GeoRecord(
    city="Mountain View",
    country_code="US",
    country_name="United States",
    continent="North America",
    latitude=37.386,
    longitude=-122.0838,
    time_zone="America/Los_Angeles",
    postal_code="94043",
    subdivisions=["California"],
)

SYDNEY_NO_SUBDIVISIONS = GeoRecord(
    country_code="AU",
    country_name="Australia",
    continent="Oceania",
    latitude=-33.494,
    longitude=143.2104,
    time_zone="Australia/Sydney",
)


class FakeGeoProvider(BaseGeoLookupProvider):
    """In-memory provider keyed by the textual IP address."""

    def __init__(self, records: dict[str, GeoRecord] | None = None) -> None:
        self.records = records or {}
        self.lookups: list[str] = []
        self.closed = False

    def lookup(self, ip: IPv4Address | IPv6Address) -> GeoRecord:
        self.lookups.append(str(ip))
        try:
            return self.records[str(ip)]
        except KeyError as exc:
            raise IpNotFoundError(f"GeoIP data not found for IP: {ip}") from exc

    def close(self) -> None:
        self.closed = True


class FailingGeoProvider(BaseGeoLookupProvider):
    """Provider whose lookups always raise the configured exception."""

    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    def lookup(self, ip: IPv4Address | IPv6Address) -> GeoRecord:
        raise self._exc

    def close(self) -> None:
        return None


def _names(name: str | None) -> dict[str, str]:
    return {"en": name} if name else {}


def make_city_response(
    city: str | None = "Mountain View",
    country_code: str | None = "US",
    country_name: str | None = "United States",
    continent: str | None = "North America",
    latitude: float | None = 37.386,
    longitude: float | None = -122.0838,
    time_zone: str | None = "America/Los_Angeles",
    postal_code: str | None = "94043",
    subdivisions: tuple[str, ...] = ("California",),
) -> Any:
    """Duck-typed stand-in for geoip2.models.City."""
    return SimpleNamespace(
        city=SimpleNamespace(names=_names(city)),
        country=SimpleNamespace(iso_code=country_code, names=_names(country_name)),
        continent=SimpleNamespace(names=_names(continent)),
        location=SimpleNamespace(latitude=latitude, longitude=longitude, time_zone=time_zone),
        postal=SimpleNamespace(code=postal_code),
        subdivisions=tuple(SimpleNamespace(names=_names(name)) for name in subdivisions),
    )
