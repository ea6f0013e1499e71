"""Configuration management using Pydantic Settings"""

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Registration backend
    api_base_url: str = "http://localhost:8003/api"

    # Service
    service_name: str = "registration-flow"
    log_level: str = "INFO"

    # HTTP Client (None disables the client-side timeout)
    http_timeout_seconds: Optional[float] = None

    # Validation
    max_age_years: int = 120
    date_of_birth_fields: List[str] = ["date_of_birth", "dob", "birth_date", "birthdate"]

    # Presentation
    currency: str = "USD"
    support_contact: str = "support@example.org"


settings = Settings()
