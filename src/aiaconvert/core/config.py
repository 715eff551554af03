"""Configuration Management."""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings from environment."""

    model_config = SettingsConfigDict(
        env_prefix="AIA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Server
    http_host: str = Field(default="0.0.0.0", description="HTTP bind address")
    http_port: int = Field(default=8000, gt=0, le=65535, description="HTTP port")
    max_upload_bytes: int = Field(
        default=50 * 1024 * 1024, gt=0, description="Max decoded .aia size"
    )

    # Conversion
    mapping_path: str | None = Field(
        default=None, description="Component mapping table (JSON); packaged table if unset"
    )
    screen_name: str = Field(default="Screen1", description="Entry screen to convert")
    package_prefix: str = Field(default="com.example", description="Generated package prefix")
    default_project_name: str = Field(default="ConvertedApp", description="Fallback project name")
    conversion_timeout: float = Field(default=30.0, gt=0, description="Per-run deadline (seconds)")

    # Validation
    max_descriptor_size: int = Field(
        default=4 * 1024 * 1024, gt=0, description="Max .scm/.bky size in bytes"
    )
    max_nesting_depth: int = Field(default=64, gt=0, description="Max component/block depth")
    repair_descriptors: bool = Field(
        default=False, description="Repair invalid .scm JSON with json-repair instead of failing"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    json_logs: bool = Field(default=False, description="Use JSON log format")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
