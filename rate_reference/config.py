"""Configuration management for the Medicare rate reference service"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


CMS_DATASET_UUID = "92396110-2aed-4d63-a6a2-5d6207d46a29"


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in environment
    )

    # CMS dataset API
    cms_dataset_uuid: str = Field(default=CMS_DATASET_UUID)
    cms_base_url: Optional[str] = Field(default=None)
    cms_page_size: int = Field(default=500, ge=1)

    # Outbound call policy
    fetch_timeout_seconds: float = Field(default=10.0, gt=0)
    politeness_delay_seconds: float = Field(default=0.2, ge=0)

    # Inbound API
    rate_limit_per_minute: int = Field(default=120)

    # Cache Configuration
    cache_ttl_seconds: int = Field(default=24 * 60 * 60, gt=0)
    cache_max_items: int = Field(default=512, ge=1)

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    # Application Configuration
    app_name: str = "Medicare Rate Reference"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False)

    def get_base_url(self) -> str:
        """Resolve the dataset data endpoint"""
        if self.cms_base_url:
            return self.cms_base_url
        return f"https://data.cms.gov/data-api/v1/dataset/{self.cms_dataset_uuid}/data"


# Global settings instance
settings = Settings()
