from typing import Any

from pydantic import BaseModel, Field, field_validator


class GeoRecord(BaseModel):
    """Normalized geolocation record returned by a GeoIP provider.

    Locale-specific values the database lacks for an address are empty strings,
    never None, so the outward response shape does not depend on the provider.
    """

    city: str = ""
    country_code: str = ""
    country_name: str = ""
    continent: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    time_zone: str = ""
    postal_code: str = ""
    subdivisions: list[str] = Field(default_factory=list)

    @field_validator(
        "city", "country_code", "country_name", "continent", "time_zone", "postal_code", mode="before"
    )
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_lat_lon(cls, value: Any) -> float:
        """Missing coordinates are reported as 0.0 rather than null."""
        if value is None:
            return 0.0
        return float(value)
