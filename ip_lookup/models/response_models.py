from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Response model for the health check endpoint."""

    status: str


class ErrorResponse(BaseModel):
    """Error body shared by every endpoint; `code` mirrors the HTTP status."""

    message: str
    code: int


class WelcomeResponse(BaseModel):
    message: str
    example_usage: str


class LookupResponse(BaseModel):
    """Response model for IP geolocation lookup.

    `subdivision_name` is omitted from the JSON body (not emitted as null or
    empty) when the record has no subdivisions; routes serialize this model
    with `response_model_exclude_none=True`.
    """

    ip: str
    city: str
    country_code: str
    country_name: str
    continent: str
    latitude: float
    longitude: float
    time_zone: str
    postal_code: str
    subdivision_name: str | None = None
