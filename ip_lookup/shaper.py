from ip_lookup.errors import IpNotFoundError
from ip_lookup.logger import logger
from ip_lookup.models.common import GeoRecord
from ip_lookup.models.response_models import LookupResponse
from ip_lookup.providers.base import BaseGeoLookupProvider
from ip_lookup.resolver import ResolvedIP


def shape(ip: ResolvedIP, record: GeoRecord) -> LookupResponse:
    """Map a provider record into the outward-facing lookup response.

    Only the first subdivision is reported, and only if there is one.
    """
    return LookupResponse(
        ip=str(ip),
        city=record.city,
        country_code=record.country_code,
        country_name=record.country_name,
        continent=record.continent,
        latitude=record.latitude,
        longitude=record.longitude,
        time_zone=record.time_zone,
        postal_code=record.postal_code,
        subdivision_name=record.subdivisions[0] if record.subdivisions else None,
    )


def lookup_and_shape(provider: BaseGeoLookupProvider, ip: ResolvedIP) -> LookupResponse:
    """Run the provider lookup for `ip` and shape the result.

    Any provider failure is reported to the caller as "not found"; there is no
    fallback data source to retry against.
    """
    try:
        record = provider.lookup(ip)
    except IpNotFoundError as exc:
        logger.info(f"Could not find GeoIP data for IP {ip}: {exc}")
        raise IpNotFoundError(f"GeoIP data not found for IP: {ip}") from exc
    except Exception as exc:
        logger.exception(f"GeoIP provider failed for IP {ip}: {exc!r}")
        raise IpNotFoundError(f"GeoIP data not found for IP: {ip}") from exc

    return shape(ip, record)
