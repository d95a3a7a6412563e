from pydantic import BaseModel, ConfigDict


class LookupRequestContext(BaseModel):
    """Immutable view of the request fields used to pick the IP to look up.

    `peer_address` is the transport peer in `host:port` form (IPv6 hosts are
    bracketed), or an empty string when the server does not report one.
    """

    model_config = ConfigDict(frozen=True)

    path_ip: str | None = None
    forwarded_for: str | None = None
    real_ip: str | None = None
    peer_address: str = ""
