"""
Configuration for the EMR API client.
Reads EMR_API_URL and EMR_API_TIMEOUT from the environment or a .env file.
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    emr_api_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the EMR Service API"
    )
    emr_api_timeout: float = Field(
        default=10.0,
        description="Request timeout in seconds"
    )


settings = ClientSettings()
