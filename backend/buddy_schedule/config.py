from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Union
import secrets


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    app_name: str = "Buddy Schedule"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./data/buddy_schedule.db"

    # CORS
    cors_origins: Union[str, List[str]] = "http://localhost:3000,http://localhost:5173"

    # Authentication
    secret_key: str = secrets.token_urlsafe(32)  # random per process unless set in .env
    access_token_expire_minutes: int = 1440  # 24 hours
    min_password_length: int = 8

    @field_validator('cors_origins')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


settings = Settings()
