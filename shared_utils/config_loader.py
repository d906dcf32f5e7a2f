from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator, ConfigDict
from functools import lru_cache
from typing import Optional
from shared_utils.constants import Defaults, Environment, IdentitySource
from shared_utils.logging_utils import LogLevel, configure_logging, get_scoped_logger
from shared_utils.constants import LogScope
from shared_utils.error_handler import ConfigurationError

logger = get_scoped_logger(LogScope.CONFIG)


class Settings(BaseSettings):
    """Application configuration with environment variable precedence.

    Precedence: 1) Environment Variables > 2).env file > 3) Class defaults
    """
    # Application metadata
    app_name: str = "Meeting Chat Relay"
    app_version: str = "1.0.0"
    app_description: str = "Real-time meeting chat relay with presence"
    environment: str = Environment.DEVELOPMENT.value
    log_level: str = Defaults.LOG_LEVEL

    # API Base URL Configuration
    api_host: str = "localhost"  # Host for API (localhost, 0.0.0.0, or domain)
    api_port: int = 3001
    api_protocol: str = "http"  # "http" or "https"
    frontend_url: str = Defaults.FRONTEND_URL  # CORS origin for HTTP and Socket.IO
    socketio_path: str = Defaults.SOCKETIO_PATH

    # Auth
    jwt_secret: str = ""
    jwt_algorithm: str = Defaults.JWT_ALGORITHM

    # Meeting store (empty table name selects the in-memory store)
    aws_region: str = Defaults.AWS_REGION
    aws_endpoint_url: str = ""
    dynamodb_table_name: str = ""

    # Room coordination
    join_identity_source: str = IdentitySource.PAYLOAD.value
    require_membership_for_messages: bool = False
    join_timeout_seconds: Optional[float] = None

    # Administrative sweep (0 disables it). The sweep cannot tell a failed
    # auto-end from a meeting nobody has joined yet: any active, empty meeting
    # older than sweep_grace_seconds is ended, including never-joined ones.
    # Keep the grace period longer than creation-to-first-join.
    sweep_interval_seconds: float = 0.0
    sweep_grace_seconds: float = Defaults.SWEEP_GRACE_SECONDS

    model_config = ConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is recognized."""
        valid_envs = {e.value for e in Environment}
        if v.lower() not in valid_envs:
            raise ValueError(f"environment must be one of {valid_envs}, got {v}")
        return v.lower()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        valid_levels = {lvl.value for lvl in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}, got {v}")
        return v.upper()

    @field_validator('join_identity_source')
    @classmethod
    def validate_join_identity_source(cls, v: str) -> str:
        """Validate identity source for join requests."""
        valid_sources = {s.value for s in IdentitySource}
        if v.lower() not in valid_sources:
            raise ValueError(f"join_identity_source must be one of {valid_sources}, got {v}")
        return v.lower()

    @field_validator('join_timeout_seconds')
    @classmethod
    def validate_join_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError(f"join_timeout_seconds must be > 0, got {v}")
        return v

    @field_validator('sweep_interval_seconds', 'sweep_grace_seconds')
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"sweep settings must be >= 0, got {v}")
        return v

    @model_validator(mode="after")
    def validate_production_secret(self) -> "Settings":
        """A production deployment must sign tokens with a real secret."""
        if self.environment == Environment.PRODUCTION.value and not self.jwt_secret:
            raise ValueError("jwt_secret is required in production")
        return self

    def get_api_base_url(self) -> str:
        """Get full API base URL constructed from host, port and protocol.

        Returns:
            Full API base URL (e.g., "http://localhost:3001")
        """
        # Don't add port if it's standard (80 for http, 443 for https)
        port_str = "" if (
            (self.api_protocol == "http" and self.api_port == 80) or
            (self.api_protocol == "https" and self.api_port == 443)
        ) else f":{self.api_port}"

        return f"{self.api_protocol}://{self.api_host}{port_str}"

    @property
    def uses_in_memory_store(self) -> bool:
        return not self.dynamodb_table_name


@lru_cache()
def get_settings() -> Settings:
    """Load and cache application settings.

    Also reconfigures logging for the loaded environment and level.

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If settings are invalid
    """
    try:
        settings = Settings()
    except ValueError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
    configure_logging(level=settings.log_level, environment=settings.environment)

    # Log loaded configuration (secrets masked)
    logger.info(
        "configuration_loaded",
        environment=settings.environment,
        store="memory" if settings.uses_in_memory_store else "dynamodb",
        dynamodb_table_name=settings.dynamodb_table_name,
        join_identity_source=settings.join_identity_source,
        jwt_secret_configured=bool(settings.jwt_secret),
    )
    if not settings.jwt_secret:
        logger.warning("jwt_secret_missing", detail="HTTP routes will reject all tokens")

    return settings
