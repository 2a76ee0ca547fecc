"""
Configuration Management
Loads environment variables and provides typed config objects.
"""

from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # WordPress REST API
    wp_api_base: str = Field(
        default="http://localhost:8882/wp-json",
        validation_alias=AliasChoices("WP_API_BASE", "NEXT_PUBLIC_WP_URL"),
    )
    app_env: str = Field(default="development", alias="APP_ENV")
    token_cookie: str = Field(default="ca_jwt", alias="TOKEN_COOKIE")

    # Timeouts (seconds)
    api_timeout: float = Field(default=15.0, alias="API_TIMEOUT")
    auth_timeout: float = Field(default=10.0, alias="AUTH_TIMEOUT")

    # GoHighLevel API
    ghl_api_token: str = Field(default="", alias="GHL_API_TOKEN")
    ghl_location_id: str = Field(default="", alias="GHL_LOCATION_ID")
    ghl_api_base: str = Field(
        default="https://services.leadconnectorhq.com", alias="GHL_API_BASE"
    )

    # Gateway
    port: int = Field(default=8080, alias="PORT")
    health_check_interval_minutes: int = Field(
        default=5, alias="HEALTH_CHECK_INTERVAL_MINUTES"
    )
    state_file_path: str = Field(default="gateway_state.json", alias="STATE_FILE_PATH")
    slack_webhook_url: str = Field(default="", alias="SLACK_WEBHOOK_URL")

    # Admin client
    gateway_base_url: str = Field(
        default="http://localhost:8080", alias="GATEWAY_BASE_URL"
    )
    stale_time_seconds: float = Field(default=300.0, alias="STALE_TIME_SECONDS")
    gc_time_seconds: float = Field(default=600.0, alias="GC_TIME_SECONDS")
    trash_retention_days: int = Field(default=30, alias="TRASH_RETENTION_DAYS")

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    class Config:
        env_file = ".env"
        case_sensitive = False
        populate_by_name = True
        extra = "ignore"


# Global settings instance
settings = Settings()


# Literal confirmation tokens expected by destructive WordPress endpoints
CONFIRM_DELETE = "DELETE"
CONFIRM_BULK_DELETE = "BULK_DELETE"
CONFIRM_BULK_RESTORE = "BULK_RESTORE"
CONFIRM_EMPTY_TRASH = "EMPTY_TRASH"
CONFIRM_DELETE_ALL = "DELETE_ALL"
