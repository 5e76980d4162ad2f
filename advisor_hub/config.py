"""
Configuration for the advisor directory and its content pipeline.

Uses Pydantic Settings to load environment variables from the .env file.
Flask-only settings (secret key, session cookie) stay in the app factory.
"""

from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings loaded from environment variables.

    Attributes:
        database_url: SQLAlchemy URL of the directory database.
        firecrawl_api_key: Key for the page-to-markdown scrape service.
        gemini_api_key: Key for the text-generation model.
        resend_api_key: Key for transactional email (optional).
        admin_password: Shared password for admin sessions.
        candidate_delay_seconds: Pause between candidates in one source.
        source_delay_seconds: Pause between sources.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="",
        description="SQLAlchemy database URL; empty falls back to local SQLite",
    )

    # Scrape service
    firecrawl_api_key: str = Field(default="", description="Firecrawl API key")
    firecrawl_api_url: str = Field(
        default="https://api.firecrawl.dev/v1/scrape",
        description="Firecrawl scrape endpoint",
    )

    # Gemini - accepts either GEMINI_API_KEY or GOOGLE_API_KEY
    gemini_api_key: str = Field(default="", description="Gemini API key")
    google_api_key: str = Field(default="", description="Alternative name for the Gemini key")
    gemini_model: str = Field(default="gemini-2.5-flash", description="Gemini model id")

    # Email
    resend_api_key: str = Field(default="", description="Resend API key")
    notification_email: str = Field(default="", description="Inbox that receives lead alerts")
    notification_sender: str = Field(
        default="The Alpha Directory <notifications@resend.dev>",
        description="From header for lead alerts",
    )

    # Admin
    admin_password: str = Field(default="", description="Admin login password")

    # Marketplace
    upload_dir: Path = Field(default=Path("uploads"), description="Bill-of-sale upload directory")
    offer_ttl_hours: int = Field(default=48, ge=1, description="Hours before an offer expires")

    # Pipeline pacing
    candidate_delay_seconds: float = Field(default=0.5, ge=0)
    source_delay_seconds: float = Field(default=3.0, ge=0)

    @property
    def api_key(self) -> str:
        """Get the Gemini API key from either source."""
        return self.gemini_api_key or self.google_api_key

    def missing_pipeline_credentials(self) -> List[str]:
        """Return the env vars the scrape pipeline needs but does not have."""
        missing: List[str] = []
        if not self.database_url:
            missing.append("DATABASE_URL")
        if not self.firecrawl_api_key:
            missing.append("FIRECRAWL_API_KEY")
        if not self.api_key:
            missing.append("GEMINI_API_KEY")
        return missing


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
