from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from ip_lookup.errors import ConfigurationError
from ip_lookup.logger import logger

# Matches the volume mount used by the geoipupdate container.
DEFAULT_GEOIP_DIR = Path("/app/data")
DEFAULT_GEOIP_FILE = "GeoLite2-City.mmdb"

DEFAULT_LISTEN_ADDR = ":8080"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Path to the MaxMind City database. Empty means "use the default location".
    geoip_db_path: str = ""

    # host:port, an empty host binds all interfaces.
    listen_addr: str = DEFAULT_LISTEN_ADDR

    # Comma-separated list of origins, "*" allows any origin.
    allowed_cors_origins: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins(self) -> list[str]:
        """Parsed CORS allow-list with surrounding whitespace removed."""
        return [origin.strip() for origin in self.allowed_cors_origins.split(",") if origin.strip()]

    @property
    def listen_host_port(self) -> tuple[str, int]:
        return parse_listen_addr(self.listen_addr)

    def resolve_db_path(self) -> Path:
        """Return the database path, falling back to the default location.

        Raises ConfigurationError when GEOIP_DB_PATH is unset and the default
        database file is not available.
        """
        if self.geoip_db_path:
            logger.info(f"Using GeoIP database path from GEOIP_DB_PATH: {self.geoip_db_path}")
            return Path(self.geoip_db_path)

        default_path = DEFAULT_GEOIP_DIR / DEFAULT_GEOIP_FILE
        logger.info(f"GEOIP_DB_PATH not set. Checking default location: {default_path}")
        try:
            exists = default_path.is_file()
        except OSError as exc:
            raise ConfigurationError(
                f"Error checking for default GeoIP database at '{default_path}': {exc}. "
                "Please ensure the path is accessible or set GEOIP_DB_PATH."
            ) from exc

        if not exists:
            raise ConfigurationError(
                f"GEOIP_DB_PATH environment variable is not set, and the default database "
                f"'{DEFAULT_GEOIP_FILE}' was not found in '{DEFAULT_GEOIP_DIR}'. "
                "Please ensure the database file is available or set GEOIP_DB_PATH."
            )

        logger.info(f"Using GeoIP database found at default location: {default_path}")
        return default_path


def parse_listen_addr(listen_addr: str) -> tuple[str, int]:
    """Split a `host:port` listen address into uvicorn's host and port.

    `:8080` binds every interface; `[::1]:8080` is accepted for IPv6 hosts.
    """
    host, sep, port = listen_addr.strip().rpartition(":")
    if not sep or not port:
        raise ConfigurationError(f"Invalid LISTEN_ADDR '{listen_addr}': expected host:port")
    try:
        port_number = int(port)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid LISTEN_ADDR '{listen_addr}': port must be a number") from exc
    if not 0 < port_number < 65536:
        raise ConfigurationError(f"Invalid LISTEN_ADDR '{listen_addr}': port out of range")

    host = host.strip("[]") or "0.0.0.0"
    return host, port_number


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance shared by the app factory and the runner."""
    return Settings()
