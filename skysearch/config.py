from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App Settings
    app_name: str = "SkySearch Flight Finder"
    env: str = "development"
    log_level: str = "INFO"

    # Third Party: Amadeus
    amadeus_base_url: str = "https://test.api.amadeus.com"
    amadeus_api_key: str = ""
    amadeus_api_secret: str = ""
    token_safety_margin_seconds: int = 60
    auth_timeout_seconds: float = 10.0
    search_timeout_seconds: float = 15.0

    # Provider query defaults
    currency_code: str = "USD"
    max_offers: int = 50
    location_limit: int = 10

    # Results view
    page_size: int = 20
    histogram_max_buckets: int = 10

    # Zone used to decide what "today" is for departure dates
    timezone: str = "UTC"

    # CORS
    cors_origins: str = ""  # Comma-separated production origins

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @field_validator("token_safety_margin_seconds")
    def _min_safety_margin(cls, v):
        # Never cut closer than a minute to the provider's expiry
        return max(60, v)

settings = Settings()
