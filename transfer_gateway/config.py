"""Application configuration via environment variables."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./transfer_gateway.db"
    log_level: str = "INFO"

    # Remote processor
    api_base_url: str = "https://api-sandbox.dwolla.com"
    oauth_token_url: str = "https://sandbox.dwolla.com/oauth/v2/token"
    client_id: str = ""
    client_secret: str = ""
    http_timeout_seconds: float = 30.0
    merchant_funding_source_id: Optional[str] = None  # unset = first non-removed source
    use_mock_client: bool = False

    # Billing platform
    billing_api_url: str = "http://localhost:8080"
    billing_api_key: str = ""
    billing_api_secret: str = ""
    billing_username: str = "admin"
    billing_password: str = "password"
    billing_created_by: str = "transfer-gateway"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
