from collections.abc import Sequence
from http import HTTPStatus

from pydantic import BaseModel, ConfigDict
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from ip_lookup.exception_handlers import unhandled_exception_handler
from ip_lookup.logger import logger

WILDCARD_ORIGIN = "*"
ALLOW_METHODS = "GET, POST, OPTIONS, PUT, DELETE"
ALLOW_HEADERS = "Content-Type, Authorization, X-Requested-With"
PREFLIGHT_MAX_AGE = "86400"  # one day


class CorsDecision(BaseModel):
    """Headers to attach to a response and whether to answer it immediately."""

    model_config = ConfigDict(frozen=True)

    headers: tuple[tuple[str, str], ...] = ()
    terminate: bool = False


NO_CORS = CorsDecision()


class CorsPolicy:
    """Allow-list based CORS decisions.

    A disallowed origin only means no CORS headers are sent; the request itself
    is still served and the browser is left to block the response.
    """

    def __init__(self, allowed_origins: Sequence[str]) -> None:
        self._allowed_origins = tuple(allowed_origins)
        self._wildcard = WILDCARD_ORIGIN in self._allowed_origins

    @property
    def allowed_origins(self) -> tuple[str, ...]:
        return self._allowed_origins

    def decide(self, request_origin: str | None, method: str) -> CorsDecision:
        if not self._allowed_origins or not request_origin:
            return NO_CORS

        headers: list[tuple[str, str]]
        if self._wildcard:
            headers = [("Access-Control-Allow-Origin", WILDCARD_ORIGIN)]
        elif request_origin in self._allowed_origins:
            headers = [
                ("Access-Control-Allow-Origin", request_origin),
                ("Vary", "Origin"),
            ]
        else:
            return NO_CORS

        headers.append(("Access-Control-Allow-Methods", ALLOW_METHODS))
        headers.append(("Access-Control-Allow-Headers", ALLOW_HEADERS))
        # Browsers reject credentials combined with a wildcard origin.
        if not self._wildcard:
            headers.append(("Access-Control-Allow-Credentials", "true"))

        if method.upper() == "OPTIONS":
            headers.append(("Access-Control-Max-Age", PREFLIGHT_MAX_AGE))
            return CorsDecision(headers=tuple(headers), terminate=True)

        return CorsDecision(headers=tuple(headers))


def apply_cors_headers(response: Response, decision: CorsDecision) -> None:
    for name, value in decision.headers:
        if name == "Vary":
            response.headers.add_vary_header(value)
        else:
            response.headers[name] = value


class CorsPolicyMiddleware(BaseHTTPMiddleware):
    """Apply a CorsPolicy to every request, answering allowed preflights with 204."""

    def __init__(self, app: ASGIApp, policy: CorsPolicy) -> None:
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        decision = self.policy.decide(request.headers.get("origin"), request.method)

        if decision.terminate:
            logger.debug(f"Answering CORS preflight path={request.url.path} origin={request.headers.get('origin')}")
            response = Response(status_code=HTTPStatus.NO_CONTENT)
            apply_cors_headers(response, decision)
            return response

        try:
            response = await call_next(request)
        except Exception as exc:
            # Rendered here so unexpected 500s carry the same CORS headers.
            response = await unhandled_exception_handler(request, exc)
        apply_cors_headers(response, decision)
        return response
