"""Configuration for the CrUX dashboard proxy and CLI.

Read from ``CRUX_*`` environment variables or a local ``.env`` file. The API
key and port also honour the unprefixed ``GOOGLE_API_KEY`` and ``PORT`` names.
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

CRUX_QUERY_RECORD_URL = "https://chromeuxreport.googleapis.com/v1/records:queryRecord"


class DashboardConfig(BaseSettings):
    """Main configuration for the CrUX dashboard."""

    # Upstream API
    google_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("CRUX_GOOGLE_API_KEY", "GOOGLE_API_KEY"),
        description="Chrome UX Report API key",
    )
    api_endpoint: str = Field(
        default=CRUX_QUERY_RECORD_URL, description="CrUX records:queryRecord endpoint"
    )
    form_factor: str = Field(default="PHONE", description="Form factor sent with every query")
    request_timeout_sec: float = Field(default=30.0, description="Upstream request timeout")
    max_concurrency: int = Field(
        default=8, ge=1, description="Concurrent upstream requests per batch"
    )

    # Proxy server
    host: str = Field(default="0.0.0.0", description="Bind address for the proxy")
    port: int = Field(
        default=5000,
        validation_alias=AliasChoices("CRUX_PORT", "PORT"),
        description="Bind port for the proxy",
    )
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = {
        "env_prefix": "CRUX_",
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }
