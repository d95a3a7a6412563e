from collections.abc import Callable, Sequence
from ipaddress import IPv4Address, IPv6Address, ip_address

from ip_lookup.errors import InvalidIpError, IpUndeterminedError
from ip_lookup.logger import logger
from ip_lookup.models.request_models import LookupRequestContext

ResolvedIP = IPv4Address | IPv6Address
CandidateStrategy = Callable[[LookupRequestContext], str | None]


def from_path(context: LookupRequestContext) -> str | None:
    """IP supplied explicitly as `/lookup/{ip}`, used verbatim."""
    return context.path_ip or None


def from_forwarded_for(context: LookupRequestContext) -> str | None:
    """Leftmost X-Forwarded-For entry, i.e. the original client in a proxy chain."""
    if not context.forwarded_for:
        return None
    return context.forwarded_for.split(",")[0].strip() or None


def from_real_ip(context: LookupRequestContext) -> str | None:
    if not context.real_ip:
        return None
    return context.real_ip.strip() or None


def from_peer_address(context: LookupRequestContext) -> str | None:
    """Transport peer host with the port stripped, or the raw peer address."""
    if not context.peer_address:
        return None
    return split_host(context.peer_address)


def split_host(address: str) -> str:
    """Strip a trailing `:port` from `host:port` or `[host]:port`.

    Anything that is not in one of those forms (a bare IPv6 address, a unix
    socket path) is returned unchanged.
    """
    if address.startswith("["):
        host, sep, port = address[1:].partition("]:")
        if sep and port.isdigit():
            return host
        return address

    host, sep, port = address.rpartition(":")
    if sep and ":" not in host and port.isdigit():
        return host
    return address


DEFAULT_STRATEGIES: tuple[CandidateStrategy, ...] = (
    from_path,
    from_forwarded_for,
    from_real_ip,
    from_peer_address,
)


class ClientIPResolver:
    """Pick and validate the IP address a lookup request refers to.

    Strategies are tried in order and the first non-empty candidate wins. An
    invalid candidate is rejected outright; later strategies are not consulted.
    """

    def __init__(self, strategies: Sequence[CandidateStrategy] = DEFAULT_STRATEGIES) -> None:
        self._strategies = tuple(strategies)

    def resolve(self, context: LookupRequestContext) -> ResolvedIP:
        candidate = self._first_candidate(context)
        if candidate is None:
            raise IpUndeterminedError("Could not determine IP address from request")

        try:
            resolved = ip_address(candidate)
        except ValueError as exc:
            raise InvalidIpError(f"Invalid IP address format: {candidate}") from exc

        # Zone-scoped addresses (fe80::1%eth0) name a local interface, not a host.
        if isinstance(resolved, IPv6Address) and resolved.scope_id is not None:
            raise InvalidIpError(f"Invalid IP address format: {candidate}")

        # ::ffff:a.b.c.d is reported and looked up as plain IPv4.
        if isinstance(resolved, IPv6Address) and resolved.ipv4_mapped is not None:
            resolved = resolved.ipv4_mapped

        if resolved.is_loopback:
            logger.warning(
                f"Request IP is local ({resolved}) after checking proxy headers. "
                "GeoIP lookup might return limited or no data."
            )
        return resolved

    def _first_candidate(self, context: LookupRequestContext) -> str | None:
        for strategy in self._strategies:
            candidate = strategy(context)
            if candidate:
                return candidate
        return None
