"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # External Services (directory search, affordability scoring, request persistence)
    api_base_url: str = "http://localhost:5134"
    api_token: str = ""

    # Service
    service_name: str = "payflow-deductions"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 10.0
    gateway_max_retries: int = 3
    gateway_backoff_base: float = 0.25  # Exponential backoff base in seconds, read-only calls only

    # Workflow
    search_page_limit: int = 50
    affordability_debounce_seconds: float = 0.0
    require_affordability_confirmation: bool = False
    currency_code: str = "MWK"


settings = Settings()
