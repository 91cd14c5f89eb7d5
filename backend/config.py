"""Application configuration."""

from pydantic import BaseModel


class Settings(BaseModel):
    """Application settings."""

    app_name: str = "Compose Graph API"
    app_version: str = "0.1.0"
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:5173"]
    api_prefix: str = "/api"
    log_level: str = "INFO"

    # Uploads
    max_upload_bytes: int = 1024 * 1024


settings = Settings()
