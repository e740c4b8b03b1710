from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    DATABASE_URL: str = "sqlite+aiosqlite:///./spotmap.db"

    DEBUG: bool = False

    # development | production | test
    ENVIRONMENT: str = "production"

    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: List[str] = ["*"]

    PLACES_API_KEY: str = ""
    PLACES_API_URL: str = "https://places.googleapis.com/v1/places:searchNearby"
    GEOCODE_API_URL: str = "https://maps.googleapis.com/maps/api/geocode/json"
    PLACES_MEDIA_URL: str = "https://places.googleapis.com/v1"
    PLACES_API_TIMEOUT: float = 10.0

    MAX_CONCURRENT_PLACES_REQUESTS: int = 10

    UPCOMING_EVENTS_LIMIT: int = 10

    @property
    def expose_error_details(self) -> bool:
        return self.DEBUG or self.ENVIRONMENT != "production"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
