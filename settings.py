from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Skåne Trip Search API"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    # CORS: "*" for dev; in production set to comma-separated origins, e.g. "https://trip.example.com"
    cors_origins: str = "*"

    # Place index (Pelias) base URL, e.g. https://pelias.example.org/v1
    pelias_url: str = "https://pelias.example.org/v1"
    # OpenTripPlanner GraphQL endpoint
    otp_url: str = "https://otp.example.org/otp/gtfs/v1"
    accept_language: str = "sv"
    # Transport-level timeout for upstream calls; empty/None disables it
    request_timeout_seconds: float | None = 30.0

    suggest_debounce_ms: int = 200
    suggest_rate_limit: str = "30/second"
    # Live search sessions kept in memory; the oldest is evicted past this
    max_sessions: int = 1000


def get_settings() -> Settings:
    return Settings()
