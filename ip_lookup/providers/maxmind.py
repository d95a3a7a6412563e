from ipaddress import IPv4Address, IPv6Address
from pathlib import Path

import geoip2.database
import geoip2.errors
import geoip2.models
import maxminddb.errors

from ip_lookup.errors import DatabaseOpenError, IpNotFoundError
from ip_lookup.logger import logger
from ip_lookup.models.common import GeoRecord
from ip_lookup.providers.base import BaseGeoLookupProvider

LOCALE = "en"


class MaxMindCityProvider(BaseGeoLookupProvider):
    """GeoIP provider backed by a MaxMind GeoLite2/GeoIP2 City database file.

    The reader memory-maps the database when possible; lookups do no I/O
    beyond page faults and never block on the network.
    """

    def __init__(self, reader: geoip2.database.Reader, db_path: Path) -> None:
        self._reader = reader
        self._db_path = db_path

    @classmethod
    def open(cls, db_path: Path | str) -> "MaxMindCityProvider":
        """Open the database at `db_path`, raising DatabaseOpenError on failure."""
        path = Path(db_path)
        logger.info(f"Attempting to load GeoIP database from: {path}")
        try:
            reader = geoip2.database.Reader(str(path), locales=[LOCALE])
        except (OSError, ValueError, maxminddb.errors.InvalidDatabaseError) as exc:
            raise DatabaseOpenError(f"Error opening GeoIP database at {path}: {exc}") from exc

        logger.info(f"GeoIP database loaded successfully: {reader.metadata().database_type}")
        return cls(reader, path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def lookup(self, ip: IPv4Address | IPv6Address) -> GeoRecord:
        try:
            response = self._reader.city(ip)
        except geoip2.errors.AddressNotFoundError as exc:
            raise IpNotFoundError(f"GeoIP data not found for IP: {ip}") from exc

        return self._normalize_record(response)

    def close(self) -> None:
        logger.info(f"Closing GeoIP database: {self._db_path}")
        self._reader.close()

    @staticmethod
    def _normalize_record(response: geoip2.models.City) -> GeoRecord:
        """Map a geoip2 City response into our normalized schema."""
        return GeoRecord(
            city=response.city.names.get(LOCALE),
            country_code=response.country.iso_code,
            country_name=response.country.names.get(LOCALE),
            continent=response.continent.names.get(LOCALE),
            latitude=response.location.latitude,
            longitude=response.location.longitude,
            time_zone=response.location.time_zone,
            postal_code=response.postal.code,
            subdivisions=[subdivision.names.get(LOCALE, "") for subdivision in response.subdivisions],
        )
