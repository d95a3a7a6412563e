from abc import ABC, abstractmethod
from ipaddress import IPv4Address, IPv6Address

from ip_lookup.models.common import GeoRecord


class BaseGeoLookupProvider(ABC):
    """Abstract base for all GeoIP lookup providers.

    A provider is opened once at startup and shared read-only by every request,
    so `lookup` must be safe to call concurrently. Concrete implementations map
    their own record format into the normalized GeoRecord shape.
    """

    @abstractmethod
    def lookup(self, ip: IPv4Address | IPv6Address) -> GeoRecord:
        """Look up the geolocation record for a validated IP address.

        Raises IpNotFoundError when the address has no record.
        """
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release the resources held by the provider."""
        raise NotImplementedError
