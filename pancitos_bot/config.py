"""Application configuration using Pydantic BaseSettings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationError
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from pancitos_bot.constants import (
    DEFAULT_PORT,
    FACEBOOK_API_TIMEOUT_SECONDS,
    FACEBOOK_GRAPH_API_VERSION,
)


class ConfigurationError(Exception):
    """Raised when a required setting is missing or invalid at startup."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from the environment and config files.

    Values are read once per process and the instance is frozen, so every
    component sees the same secrets for the lifetime of the process.
    """

    model_config = SettingsConfigDict(
        # Load .env first, then .env.local (for local/test overrides)
        # Later files override earlier ones, so .env.local takes precedence
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        json_file="config/default.json",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Messenger Configuration
    messenger_app_secret: str = Field(
        ..., min_length=1, description="Facebook App secret used to sign webhooks"
    )
    messenger_validation_token: str = Field(
        ..., min_length=1, description="Webhook subscription verify token"
    )
    messenger_page_access_token: str = Field(
        ..., min_length=1, description="Facebook Page access token for the Send API"
    )
    server_url: str = Field(
        ..., min_length=1, description="Public base URL of this server"
    )

    # Webhook
    allow_unsigned_webhooks: bool = Field(
        default=False,
        description="Accept webhook calls without X-Hub-Signature (testing only)",
    )

    # Send API
    graph_api_version: str = Field(
        default=FACEBOOK_GRAPH_API_VERSION, description="Graph API version"
    )
    facebook_api_timeout_seconds: float = Field(
        default=FACEBOOK_API_TIMEOUT_SECONDS,
        gt=0,
        description="Timeout for Send API calls (seconds)",
    )

    # Environment
    env: Literal["local", "staging", "prod"] = Field(
        default="local", description="Current environment"
    )
    port: int = Field(default=DEFAULT_PORT, description="HTTP port for `serve`")
    log_level: str = Field(default="INFO", description="Python logging level")

    # Sentry Configuration
    sentry_dsn: str | None = Field(
        default=None, description="Sentry DSN for error tracking (optional)"
    )
    sentry_traces_sample_rate: float = Field(
        default=1.0, description="Sentry traces sample rate (0.0 to 1.0)"
    )

    # Logfire Configuration
    logfire_token: str | None = Field(
        default=None, description="Pydantic Logfire token for observability"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment and dotenv values win over config/default.json
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def load_settings(**overrides) -> Settings:
    """Build settings, turning validation failures into ConfigurationError."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        fields = sorted(
            {".".join(str(part) for part in error["loc"]) for error in e.errors()}
        )
        raise ConfigurationError(
            f"Missing or invalid configuration values: {', '.join(fields)}"
        ) from e


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return load_settings()
