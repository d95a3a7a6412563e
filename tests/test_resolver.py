import logging
from ipaddress import IPv4Address, IPv6Address

import pytest

from ip_lookup.errors import InvalidIpError, IpUndeterminedError
from ip_lookup.logger import logger
from ip_lookup.models.request_models import LookupRequestContext
from ip_lookup.resolver import ClientIPResolver, from_peer_address, split_host


def _resolve(**fields: str | None):
    """Helper to resolve a context built from keyword fields."""
    return ClientIPResolver().resolve(LookupRequestContext(**fields))


def test_path_ip_takes_precedence_over_headers() -> None:
    ip = _resolve(path_ip="8.8.8.8", forwarded_for="1.2.3.4", real_ip="9.9.9.9", peer_address="10.0.0.1:1234")
    assert ip == IPv4Address("8.8.8.8")


def test_path_ip_ipv6() -> None:
    ip = _resolve(path_ip="2001:4860:4860::8888")
    assert ip == IPv6Address("2001:4860:4860::8888")


def test_forwarded_for_first_entry_wins() -> None:
    ip = _resolve(forwarded_for="1.2.3.4, 5.6.7.8", peer_address="10.0.0.1:1234")
    assert str(ip) == "1.2.3.4"


def test_forwarded_for_entry_is_trimmed() -> None:
    ip = _resolve(forwarded_for="   1.2.3.4   ,5.6.7.8")
    assert str(ip) == "1.2.3.4"


def test_empty_forwarded_for_falls_back_to_real_ip() -> None:
    ip = _resolve(forwarded_for="", real_ip="9.9.9.9", peer_address="10.0.0.1:1234")
    assert str(ip) == "9.9.9.9"


def test_blank_first_forwarded_for_entry_falls_back_to_real_ip() -> None:
    ip = _resolve(forwarded_for=" , 5.6.7.8", real_ip=" 9.9.9.9 ")
    assert str(ip) == "9.9.9.9"


def test_peer_address_port_is_stripped() -> None:
    ip = _resolve(peer_address="203.0.113.5:54321")
    assert str(ip) == "203.0.113.5"


def test_bracketed_ipv6_peer_address_port_is_stripped() -> None:
    ip = _resolve(peer_address="[2001:db8::1]:443")
    assert ip == IPv6Address("2001:db8::1")


def test_ipv4_mapped_address_is_reported_as_ipv4() -> None:
    ip = _resolve(path_ip="::ffff:203.0.113.5")
    assert ip == IPv4Address("203.0.113.5")


@pytest.mark.parametrize("candidate", ["999.999.999.999", "not-an-ip", "1.2.3", "2001:db8::zz"])
def test_invalid_path_ip_is_rejected_with_candidate_in_message(candidate: str) -> None:
    with pytest.raises(InvalidIpError) as exc_info:
        _resolve(path_ip=candidate)

    assert exc_info.value.message == f"Invalid IP address format: {candidate}"
    assert exc_info.value.status_code == 400


def test_invalid_forwarded_for_does_not_fall_through() -> None:
    """A malformed header is an error even if later sources hold a valid IP."""
    with pytest.raises(InvalidIpError) as exc_info:
        _resolve(forwarded_for="garbage, 1.2.3.4", real_ip="9.9.9.9", peer_address="10.0.0.1:1234")

    assert "garbage" in exc_info.value.message


def test_invalid_real_ip_does_not_fall_through() -> None:
    with pytest.raises(InvalidIpError):
        _resolve(real_ip="unknown", peer_address="10.0.0.1:1234")


def test_no_candidate_raises_undetermined() -> None:
    with pytest.raises(IpUndeterminedError) as exc_info:
        _resolve()

    assert exc_info.value.message == "Could not determine IP address from request"
    assert exc_info.value.status_code == 400


def test_loopback_resolves_and_logs_warning(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    # The service logger does not propagate by default; let caplog see it.
    monkeypatch.setattr(logger, "propagate", True)

    with caplog.at_level(logging.WARNING, logger=logger.name):
        ip = _resolve(peer_address="127.0.0.1:5000")

    assert str(ip) == "127.0.0.1"
    assert any("Request IP is local (127.0.0.1)" in record.getMessage() for record in caplog.records)


def test_ipv6_loopback_resolves() -> None:
    assert str(_resolve(peer_address="[::1]:5000")) == "::1"


def test_custom_strategy_order() -> None:
    resolver = ClientIPResolver(strategies=[from_peer_address])
    ip = resolver.resolve(LookupRequestContext(forwarded_for="1.2.3.4", peer_address="198.51.100.7:80"))
    assert str(ip) == "198.51.100.7"


@pytest.mark.parametrize(
    ("address", "expected"),
    [
        ("203.0.113.5:54321", "203.0.113.5"),
        ("[::1]:8080", "::1"),
        ("::1", "::1"),
        ("203.0.113.5", "203.0.113.5"),
        ("/run/app.sock", "/run/app.sock"),
    ],
)
def test_split_host(address: str, expected: str) -> None:
    assert split_host(address) == expected


@pytest.mark.parametrize("candidate", ["fe80::1%eth0", "fe80::1%1"])
def test_zone_scoped_ipv6_is_rejected(candidate: str) -> None:
    with pytest.raises(InvalidIpError) as exc_info:
        _resolve(path_ip=candidate)

    assert exc_info.value.message == f"Invalid IP address format: {candidate}"


def test_zone_scoped_forwarded_for_is_rejected() -> None:
    with pytest.raises(InvalidIpError):
        _resolve(forwarded_for="fe80::1%eth0", peer_address="10.0.0.1:1234")
