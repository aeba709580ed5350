from pathlib import Path
from typing import List, Union
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    # App Info
    APP_NAME: str = "Website Metrics API"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"

    # Database
    DATABASE_URL: str

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 43200  # 30 days

    # CORS
    CORS_ORIGINS: Union[str, List[str]] = "http://localhost:3000"

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',')]
        return v

    # Display formatting
    ICON_BASE_URL: str = "//umami.guole.fun/images"
    NAME_TABLE_DIR: str = str(Path(__file__).parent / "data")
    COUNTRY_LOCALE: str = "en-US"

    # Main metrics
    BREAKDOWN_DIMENSIONS: Union[str, List[str]] = "os,browser,country"
    DEFAULT_METRICS_LIMIT: int = 500

    @field_validator('BREAKDOWN_DIMENSIONS', mode='before')
    @classmethod
    def parse_breakdown_dimensions(cls, v):
        if isinstance(v, str):
            return [dim.strip() for dim in v.split(',') if dim.strip()]
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


# Create settings instance
settings = Settings()
