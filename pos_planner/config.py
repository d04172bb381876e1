"""Configuration management using Pydantic Settings"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (in-progress checkout sessions and receipts only)
    database_url: str = "sqlite:///./pos_planner.db"

    # External Services
    settlement_api_base: str = "http://localhost:8003"
    directory_api_base: str = "http://localhost:8004"

    # Service
    service_name: str = "pos-planner"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 10.0

    # Plan builder defaults
    default_installment_count: int = 3
    default_frequency: str = "monthly"
    default_interval_days: int = 7
    default_payment_method: str = "cash"
    payment_methods: List[str] = ["cash", "card", "transfer"]


settings = Settings()
