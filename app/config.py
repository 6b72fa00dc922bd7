"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./school_payments.db"
    log_level: str = "INFO"

    # Payment gateway
    gateway_base_url: str = "https://dev-vanilla.edviron.com/erp"
    gateway_name: str = "Edviron"
    pg_key: str = ""  # pre-shared JWT signing key
    pg_api_key: str = ""  # bearer token for gateway API calls
    school_id: str = ""
    currency: str = "INR"

    # Public URLs
    app_url: str = "http://localhost:8000"
    frontend_url: str = "http://localhost:3000"

    # Outbound timeouts (seconds)
    create_timeout_seconds: float = 10.0
    poll_timeout_seconds: float = 5.0
    status_token_ttl_seconds: int = 3600

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
