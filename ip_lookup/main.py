from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request, status
from starlette.exceptions import HTTPException as StarletteHTTPException

from ip_lookup.config import Settings, get_settings
from ip_lookup.cors import CorsPolicy, CorsPolicyMiddleware
from ip_lookup.errors import AppError, DatabaseNotLoadedError, ServiceUnavailableError
from ip_lookup.exception_handlers import app_error_handler, http_exception_handler, unhandled_exception_handler
from ip_lookup.logger import logger
from ip_lookup.models.request_models import LookupRequestContext
from ip_lookup.models.response_models import ErrorResponse, HealthResponse, LookupResponse, WelcomeResponse
from ip_lookup.providers.base import BaseGeoLookupProvider
from ip_lookup.providers.maxmind import MaxMindCityProvider
from ip_lookup.resolver import ClientIPResolver
from ip_lookup.shaper import lookup_and_shape

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the GeoIP database on startup unless a provider was injected.

    A configuration or database error propagates and aborts startup.
    """
    opened: BaseGeoLookupProvider | None = None
    if app.state.geo_provider is None:
        settings: Settings = app.state.settings
        opened = MaxMindCityProvider.open(settings.resolve_db_path())
        app.state.geo_provider = opened

    logger.info("Started IP Lookup Service")
    try:
        yield
    finally:
        if opened is not None:
            app.state.geo_provider = None
            opened.close()
        logger.info("IP Lookup Service stopped")


def get_geo_provider(request: Request) -> BaseGeoLookupProvider | None:
    """Dependency returning the shared provider, or None if it is not loaded."""
    return request.app.state.geo_provider


def get_client_ip_resolver() -> ClientIPResolver:
    return ClientIPResolver()


def format_peer_address(request: Request) -> str:
    if request.client is None:
        return ""
    host, port = request.client.host, request.client.port
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def build_lookup_context(request: Request, path_ip: str | None = None) -> LookupRequestContext:
    # Only the first segment after /lookup/ names the IP.
    segment = path_ip.split("/", 1)[0] if path_ip else None
    return LookupRequestContext(
        path_ip=segment or None,
        forwarded_for=request.headers.get("x-forwarded-for"),
        real_ip=request.headers.get("x-real-ip"),
        peer_address=format_peer_address(request),
    )


async def ip_lookup(
    request: Request,
    ip_path: str,
    provider: Annotated[BaseGeoLookupProvider | None, Depends(get_geo_provider)],
    resolver: Annotated[ClientIPResolver, Depends(get_client_ip_resolver)],
) -> LookupResponse:
    """Look up geolocation information for either a specific IP or the caller's IP.

    - `/lookup/{ip}` looks up that explicit address.
    - `/lookup/` infers the caller's address from X-Forwarded-For, X-Real-IP
      and finally the connection peer, in that order.
    """
    return _lookup(request, provider, resolver, ip_path)


async def client_ip_lookup(
    request: Request,
    provider: Annotated[BaseGeoLookupProvider | None, Depends(get_geo_provider)],
    resolver: Annotated[ClientIPResolver, Depends(get_client_ip_resolver)],
) -> LookupResponse:
    """Look up geolocation information for the caller's IP."""
    return _lookup(request, provider, resolver, None)


def _lookup(
    request: Request,
    provider: BaseGeoLookupProvider | None,
    resolver: ClientIPResolver,
    ip_path: str | None,
) -> LookupResponse:
    if provider is None:
        logger.error(f"GeoIP database is not loaded path={request.url.path} method={request.method}")
        raise ServiceUnavailableError("GeoIP service not available")

    context = build_lookup_context(request, ip_path)
    ip = resolver.resolve(context)
    logger.info(
        "Performing IP lookup "
        f"path={request.url.path} method={request.method} ip={ip} "
        f"explicit={context.path_ip is not None} x_forwarded_for={context.forwarded_for}"
    )
    return lookup_and_shape(provider, ip)


async def healthz(
    provider: Annotated[BaseGeoLookupProvider | None, Depends(get_geo_provider)],
) -> HealthResponse:
    """Report whether the GeoIP database is loaded."""
    if provider is None:
        raise DatabaseNotLoadedError("GeoIP database not loaded")
    return HealthResponse(status="ok")


async def root() -> WelcomeResponse:
    return WelcomeResponse(
        message="Welcome to the IP Lookup Service. Please use the /lookup endpoint to find GeoIP information.",
        example_usage="/lookup/8.8.8.8 or /lookup/",
    )


def create_app(
    settings: Settings | None = None,
    provider: BaseGeoLookupProvider | None = None,
) -> FastAPI:
    """Build the service application.

    When `provider` is given it is used as-is and owned by the caller;
    otherwise the MaxMind database named by `settings` is opened at startup.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="IP Lookup Service",
        version="0.1.0",
        description="Resolve IP addresses to geolocation metadata from a MaxMind City database.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.geo_provider = provider

    cors_origins = settings.cors_origins
    if cors_origins:
        logger.info(f"Allowed CORS origins: {cors_origins}")
    else:
        logger.info("ALLOWED_CORS_ORIGINS not set. CORS headers will not be added.")
    app.add_middleware(CorsPolicyMiddleware, policy=CorsPolicy(cors_origins))

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_api_route("/", root, methods=["GET"], response_model=WelcomeResponse, tags=["meta"])
    app.add_api_route(
        "/healthz",
        healthz,
        methods=["GET"],
        response_model=HealthResponse,
        responses=ERROR_RESPONSES,
        tags=["health"],
        summary="Health check",
    )
    for path, endpoint in (("/lookup", client_ip_lookup), ("/lookup/{ip_path:path}", ip_lookup)):
        app.add_api_route(
            path,
            endpoint,
            methods=["GET"],
            response_model=LookupResponse,
            response_model_exclude_none=True,
            responses=ERROR_RESPONSES,
            status_code=status.HTTP_200_OK,
            tags=["ip"],
            summary="Look up geolocation information for an IP address.",
        )
    return app


app = create_app()
