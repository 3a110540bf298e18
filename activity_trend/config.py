"""Application configuration using Pydantic Settings."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Strava API Configuration
    strava_client_id: str = Field(default="", description="Strava API Client ID")
    strava_client_secret: str = Field(default="", description="Strava API Client Secret")
    strava_access_token: str = Field(default="", description="Strava API Access Token")
    strava_refresh_token: str = Field(default="", description="Strava API Refresh Token")
    strava_token_expires_at: int = Field(default=0, description="Strava API Token Expiration Timestamp")
    strava_token_file: str = Field(default="data/strava_tokens.json", description="Path to store credentials")
    strava_api_base_url: str = Field(default="https://www.strava.com/api/v3", description="Strava API Base URL")
    strava_oauth_base_url: str = Field(default="https://www.strava.com/oauth", description="Strava OAuth Base URL")
    strava_redirect_uri: str = Field(default="http://localhost:8000", description="OAuth redirect URI")

    # Local activity store
    database_path: str = Field(default="data/activity_trend.db", description="SQLite database path")

    # Application Configuration
    app_host: str = Field(default="0.0.0.0", description="Application host")
    app_port: int = Field(default=8000, description="Application port")
    app_debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
